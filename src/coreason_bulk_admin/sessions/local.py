# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

import shutil
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Sequence

from coreason_bulk_admin.exceptions import SessionError
from coreason_bulk_admin.utils.logger import logger


@dataclass
class LocalSession:
    """Resolved paths of the OS tools a batch needs."""

    tools: Dict[str, str] = field(default_factory=dict)
    closed: bool = False


class LocalSessionManager:
    """
    Session manager for local OS facilities (sc.exe, schtasks, PowerShell, ping).
    There is no remote login; opening verifies the required tools are on PATH.
    """

    def __init__(self, required_tools: Sequence[str] = (), which: Optional[Callable[[str], Optional[str]]] = None):
        self.required_tools = list(required_tools)
        self._which = which or shutil.which
        self._session: Optional[LocalSession] = None

    def open(self) -> LocalSession:
        if self._session is not None and not self._session.closed:
            logger.debug("Local session already open. Reusing it.")
            return self._session

        resolved: Dict[str, str] = {}
        missing = []
        for tool in self.required_tools:
            path = self._which(tool)
            if path:
                resolved[tool] = path
            else:
                missing.append(tool)
        if missing:
            raise SessionError(f"Required tool(s) not found on PATH: {', '.join(missing)}")

        self._session = LocalSession(tools=resolved)
        logger.debug(f"Local session opened with tools: {resolved}")
        return self._session

    def close(self, session: LocalSession) -> None:
        session.closed = True
        if session is self._session:
            self._session = None
        logger.debug("Local session closed.")
