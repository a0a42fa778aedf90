"""AWS IAM directory: users and their group memberships."""

from __future__ import annotations

import logging
from typing import Any, Optional

import boto3

from scripts.user_audit.base_directory import BaseDirectory
from scripts.user_audit.config import AuditConfig
from scripts.user_audit.models import Page, Principal

logger = logging.getLogger("user_audit.aws_iam")


class AwsIamDirectory(BaseDirectory):
    DIRECTORY_NAME = "aws_iam"

    def __init__(self, config: AuditConfig, client: Any = None) -> None:
        super().__init__(config)
        self._client = client or boto3.client("iam", **self._client_kwargs())

    def list_principals_page(self, token: Optional[str]) -> Page:
        kwargs = {"Marker": token} if token else {}
        resp = self._client.list_users(**kwargs)
        principals = [Principal(name=u["UserName"]) for u in resp.get("Users", [])]
        # Marker is only meaningful while the listing is truncated
        next_token = resp.get("Marker") if resp.get("IsTruncated") else None
        return Page(principals=principals, next_token=next_token)

    def list_groups_for_principal(self, principal: Principal) -> list[str]:
        groups: list[str] = []
        kwargs: dict[str, Any] = {"UserName": principal.key}
        while True:
            resp = self._client.list_groups_for_user(**kwargs)
            groups.extend(g["GroupName"] for g in resp.get("Groups", []))
            if not resp.get("IsTruncated"):
                break
            kwargs["Marker"] = resp["Marker"]
        logger.debug("%s is in %d group(s)", principal.name, len(groups),
                     extra={"principal": principal.name})
        return groups
