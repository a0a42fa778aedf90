"""Abstract base class for all identity directories."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from botocore.config import Config

from scripts.user_audit.config import AuditConfig
from scripts.user_audit.models import Page, Principal

logger = logging.getLogger("user_audit.directory")


class BaseDirectory(ABC):
    """Each directory overrides the two remote calls and declares DIRECTORY_NAME.

    Both calls are blocking; the pipeline runs them off the event loop.
    Implementations must be safe to call from several threads at once.
    """

    DIRECTORY_NAME: str = ""

    def __init__(self, config: AuditConfig) -> None:
        self.config = config

    @abstractmethod
    def list_principals_page(self, token: Optional[str]) -> Page:
        """Fetch one listing page. ``token`` is None for the first page."""

    @abstractmethod
    def list_groups_for_principal(self, principal: Principal) -> list[str]:
        """Return the names of every group the principal belongs to."""

    # ------------------------------------------------------------------
    # boto3 helpers
    # ------------------------------------------------------------------

    def _client_kwargs(self) -> dict[str, Any]:
        """Region and retry settings shared by every boto3 client."""
        aws = self.config.aws
        kwargs: dict[str, Any] = {
            "config": Config(
                retries={"max_attempts": aws.max_attempts, "mode": aws.retry_mode}
            )
        }
        if aws.region:
            kwargs["region_name"] = aws.region
        return kwargs
