# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

from typing import Iterable, List, Protocol


class IdentitySource(Protocol):
    """Produces the ordered identities of a batch."""

    # True when load() needs the batch session to be open already
    requires_session: bool

    def load(self) -> List[str]:
        """
        Returns identities in source order, duplicates and blanks included.
        """
        ...  # pragma: no cover


class StaticIdentitySource:
    """Identities supplied directly, e.g. repeated --target options."""

    requires_session = False

    def __init__(self, identities: Iterable[str]) -> None:
        self.identities = list(identities)

    def load(self) -> List[str]:
        return list(self.identities)
