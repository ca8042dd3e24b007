# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

from enum import Enum
from typing import Iterable, Iterator, Tuple

from pydantic import BaseModel, Field


class ConfirmMode(str, Enum):
    ALWAYS = "always"
    NEVER = "never"
    DRY_RUN = "dry-run"


class RunOptions(BaseModel):
    """
    Options controlling a single batch run.
    """

    continue_on_error: bool = Field(default=True, description="Keep processing after a failed identity.")
    confirm: ConfirmMode = Field(default=ConfirmMode.NEVER, description="Confirmation policy for mutating calls.")
    isolate_exceptions: bool = Field(
        default=True, description="Convert errors raised by an action into Failed results."
    )
    fail_on_any_error: bool = Field(
        default=False, description="Treat any per-identity failure as an overall run failure."
    )

    model_config = {"frozen": True}


class Batch:
    """
    Ordered, immutable sequence of identities.
    Duplicates and blank entries are kept as given; the driver decides what to do with them.
    """

    __slots__ = ("_items",)

    def __init__(self, identities: Iterable[str] = ()) -> None:
        self._items: Tuple[str, ...] = tuple(identities)

    @classmethod
    def from_identities(cls, identities: Iterable[str]) -> "Batch":
        return cls(identities)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __getitem__(self, index: int) -> str:
        return self._items[index]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Batch):
            return self._items == other._items
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._items)

    def __repr__(self) -> str:
        return f"Batch({list(self._items)!r})"

    @property
    def identities(self) -> Tuple[str, ...]:
        return self._items

    def is_empty(self) -> bool:
        return not self._items
