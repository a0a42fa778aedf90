"""Value types shared by the directories, the pool and the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, Optional, TypeVar

from scripts.user_audit.errors import PerItemFetchError

R = TypeVar("R")


@dataclass(frozen=True)
class Principal:
    """A user in the remote directory.

    ``name`` is what the report shows; ``key`` is what the per-user group
    lookup needs (the user name for IAM, the UserId for Identity Center).
    """

    name: str
    key: str = ""

    def __post_init__(self) -> None:
        if not self.key:
            object.__setattr__(self, "key", self.name)


@dataclass(frozen=True)
class Page:
    principals: list[Principal] = field(default_factory=list)
    next_token: Optional[str] = None

    @property
    def has_more(self) -> bool:
        return bool(self.next_token)


@dataclass(frozen=True)
class ItemResult(Generic[R]):
    """Outcome of one pool invocation: a value or an error, never both."""

    value: Optional[R] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class AuditResult:
    """Final principals, their groups when fetched, and per-item failures.

    ``groups[i]`` belongs to ``principals[i]``; ``groups`` is None when no
    group filter was configured.
    """

    principals: list[Principal]
    groups: Optional[list[list[str]]] = None
    failures: list[PerItemFetchError] = field(default_factory=list)
    listed: int = 0

    def groups_for(self, index: int) -> Optional[list[str]]:
        if self.groups is None:
            return None
        return self.groups[index]
