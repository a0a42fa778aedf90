import threading
import time
from typing import Optional

import pytest

from scripts.user_audit.base_directory import BaseDirectory
from scripts.user_audit.config import AuditConfig
from scripts.user_audit.models import Page, Principal


class FakeDirectory(BaseDirectory):
    """In-memory directory serving fixed pages and group memberships."""

    DIRECTORY_NAME = "fake"

    def __init__(
        self,
        config: Optional[AuditConfig] = None,
        pages: Optional[list[list[str]]] = None,
        groups: Optional[dict[str, list[str]]] = None,
        failing_users: tuple = (),
        failing_page: Optional[int] = None,
        delay: float = 0.0,
    ) -> None:
        super().__init__(config or AuditConfig())
        self.pages = pages or []
        self.groups = groups or {}
        self.failing_users = set(failing_users)
        self.failing_page = failing_page
        self.delay = delay
        self.page_calls: list[Optional[str]] = []
        self.group_calls: list[str] = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def list_principals_page(self, token: Optional[str]) -> Page:
        self.page_calls.append(token)
        index = int(token) if token else 0
        if index == self.failing_page:
            raise RuntimeError("throttled")
        names = self.pages[index] if self.pages else []
        next_token = str(index + 1) if index + 1 < len(self.pages) else None
        return Page(principals=[Principal(n) for n in names], next_token=next_token)

    def list_groups_for_principal(self, principal: Principal) -> list[str]:
        with self._lock:
            self.group_calls.append(principal.name)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            if principal.name in self.failing_users:
                raise RuntimeError(f"cannot read groups of {principal.name}")
            return list(self.groups.get(principal.name, []))
        finally:
            with self._lock:
                self.active -= 1


class RecordingSink:
    def __init__(self):
        self.results = []

    def write(self, result):
        self.results.append(result)


class RecordingProgress:
    def __init__(self):
        self.calls = []

    def report(self, completed, total):
        self.calls.append((completed, total))


@pytest.fixture
def fake_directory_factory():
    return FakeDirectory


@pytest.fixture
def recording_sink():
    return RecordingSink()


@pytest.fixture
def recording_progress():
    return RecordingProgress()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every variable load_config reads and stop .env files from leaking in."""
    for name in (
        "AUDIT_PROVIDER",
        "AUDIT_USER_FILTERS",
        "AUDIT_GROUP_FILTERS",
        "AUDIT_CONCURRENCY",
        "AUDIT_OUTPUT",
        "AUDIT_OUTPUT_FORMAT",
        "AUDIT_LOOKUP_URL",
        "AUDIT_INCLUDE_GROUPS",
        "AUDIT_FAIL_ON_ITEM_ERRORS",
        "AWS_REGION",
        "AWS_MAX_ATTEMPTS",
        "AWS_RETRY_MODE",
        "AWS_IDENTITY_STORE_ID",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("scripts.user_audit.config.load_dotenv", lambda: None)
