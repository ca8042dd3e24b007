# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

"""
Confirmation callbacks used by the driver before each mutating call.
"""

from typing import Callable, List, Optional

from rich.console import Console
from rich.prompt import Confirm

# (action name, identity) -> proceed?
ConfirmCallback = Callable[[str, str], bool]


class PromptConfirmer:
    """Asks the operator on the terminal before each change."""

    def __init__(self, console: Optional[Console] = None, default: bool = False) -> None:
        self.console = console or Console()
        self.default = default

    def __call__(self, action_name: str, identity: str) -> bool:
        try:
            return Confirm.ask(
                f"Apply [bold]{action_name}[/bold] to [cyan]{identity}[/cyan]?",
                console=self.console,
                default=self.default,
            )
        except EOFError:
            return False


class AutoConfirmer:
    """Answers every confirmation with a fixed value."""

    def __init__(self, answer: bool = True) -> None:
        self.answer = answer
        self.asked: List[str] = []

    def __call__(self, action_name: str, identity: str) -> bool:
        self.asked.append(identity)
        return self.answer
