from .base import IdentitySource, StaticIdentitySource
from .directory import GraphGroupSource
from .files import CsvIdentitySource, TextFileIdentitySource
from .profiles import LocalProfileSource

__all__ = [
    "CsvIdentitySource",
    "GraphGroupSource",
    "IdentitySource",
    "LocalProfileSource",
    "StaticIdentitySource",
    "TextFileIdentitySource",
]
