# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

from contextlib import contextmanager
from typing import Any, Iterator, Protocol

from coreason_bulk_admin.exceptions import SessionError
from coreason_bulk_admin.utils.logger import logger


class SessionManager(Protocol):
    """Opens and closes the authenticated connection a batch runs against."""

    def open(self) -> Any:
        """
        Returns an open session. Reuses the current session when one is already open.
        """
        ...  # pragma: no cover

    def close(self, session: Any) -> None:
        """Closes the session."""
        ...  # pragma: no cover


@contextmanager
def session_scope(manager: SessionManager) -> Iterator[Any]:
    """
    Opens a session and closes it exactly once on every exit path.
    Open failures propagate as SessionError; close failures are logged only.
    """
    try:
        session = manager.open()
    except SessionError:
        raise
    except Exception as e:
        raise SessionError(f"Failed to open session: {e}") from e

    try:
        yield session
    finally:
        try:
            manager.close(session)
        except Exception as e:
            logger.error(f"Failed to close session cleanly: {e}")
