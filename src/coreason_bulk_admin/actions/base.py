# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

from abc import ABC, abstractmethod
from typing import Optional

from coreason_bulk_admin.domain.results import ActionResult
from coreason_bulk_admin.utils.shell import ShellExecutor


class RemoteAction(ABC):
    """Abstract base class for an idempotent per-identity change."""

    name: str = "action"

    @abstractmethod
    def apply(self, identity: str) -> ActionResult:
        """
        Applies the change to one identity.

        Args:
            identity: The target (mailbox UPN, host name, SID, ...).

        Returns:
            ActionResult describing the outcome. Implementations may raise
            ActionError instead of returning a failed result.
        """
        pass

    def describe(self, identity: str) -> str:
        """Human readable description of what apply() would do, used for dry runs."""
        return f"{self.name} -> {identity}"


class ShellAction(RemoteAction):
    """Base class for actions driven through local OS tools."""

    def __init__(self, shell: Optional[ShellExecutor] = None) -> None:
        self.shell = shell or ShellExecutor()
