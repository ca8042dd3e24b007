from typing import Dict, Iterable, Iterator, List, Optional

import pytest

from coreason_bulk_admin.actions.base import RemoteAction
from coreason_bulk_admin.config import get_settings
from coreason_bulk_admin.domain.results import ActionResult
from coreason_bulk_admin.exceptions import ActionError, SessionError


class RecordingAction(RemoteAction):
    """Applies nothing; records calls and fails on request."""

    name = "recording"

    def __init__(
        self,
        raise_on: Iterable[str] = (),
        fail_on: Iterable[str] = (),
        error: Optional[Exception] = None,
    ) -> None:
        self.raise_on = set(raise_on)
        self.fail_on = set(fail_on)
        self.error = error
        self.calls: List[str] = []

    def apply(self, identity: str) -> ActionResult:
        self.calls.append(identity)
        if identity in self.raise_on:
            raise self.error or ActionError(f"boom {identity}")
        if identity in self.fail_on:
            return ActionResult.failed(identity, f"refused {identity}")
        return ActionResult.applied(identity)


class StatefulAction(RemoteAction):
    """Converges a fake remote store to the configured value."""

    name = "stateful"

    def __init__(self, store: Dict[str, str], value: str) -> None:
        self.store = store
        self.value = value

    def apply(self, identity: str) -> ActionResult:
        if self.store.get(identity) == self.value:
            return ActionResult.skipped(identity, "already set")
        self.store[identity] = self.value
        return ActionResult.applied(identity)


class FakeSession:
    def __init__(self) -> None:
        self.closed = False


class FakeSessionManager:
    def __init__(self, fail_open: bool = False, fail_close: bool = False) -> None:
        self.fail_open = fail_open
        self.fail_close = fail_close
        self.opened = 0
        self.closed = 0
        self.session: Optional[FakeSession] = None

    def open(self) -> FakeSession:
        self.opened += 1
        if self.fail_open:
            raise SessionError("cannot connect")
        if self.session is None or self.session.closed:
            self.session = FakeSession()
        return self.session

    def close(self, session: FakeSession) -> None:
        self.closed += 1
        session.closed = True
        if self.fail_close:
            raise RuntimeError("disconnect failed")


class ListSource:
    def __init__(self, identities: List[str], requires_session: bool = False) -> None:
        self.identities = identities
        self.requires_session = requires_session
        self.loaded = 0

    def load(self) -> List[str]:
        self.loaded += 1
        return list(self.identities)


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def recording_action() -> RecordingAction:
    return RecordingAction()


@pytest.fixture
def session_manager() -> FakeSessionManager:
    return FakeSessionManager()
