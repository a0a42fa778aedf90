"""AWS IAM Identity Center directory: identity store users and group memberships."""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

import boto3

from scripts.user_audit.base_directory import BaseDirectory
from scripts.user_audit.config import AuditConfig
from scripts.user_audit.errors import ConfigurationError
from scripts.user_audit.models import Page, Principal

logger = logging.getLogger("user_audit.aws_identity_center")


class AwsIdentityCenterDirectory(BaseDirectory):
    DIRECTORY_NAME = "aws_identity_center"

    def __init__(self, config: AuditConfig, client: Any = None) -> None:
        super().__init__(config)
        idc = config.identity_center
        if not idc:
            raise ConfigurationError(
                "AWS_IDENTITY_STORE_ID is required for the aws_identity_center provider"
            )
        self._identity_store_id = idc.identity_store_id
        self._client = client or boto3.client("identitystore", **self._client_kwargs())
        self._group_names: Optional[dict[str, str]] = None
        self._group_names_lock = threading.Lock()

    def _paginate(self, method: str, key: str, **kwargs) -> list[dict]:
        """Generic paginator for boto3 APIs."""
        items: list[dict] = []
        paginator = self._client.get_paginator(method)
        for page in paginator.paginate(**kwargs):
            items.extend(page.get(key, []))
        return items

    def list_principals_page(self, token: Optional[str]) -> Page:
        kwargs: dict[str, Any] = {"IdentityStoreId": self._identity_store_id}
        if token:
            kwargs["NextToken"] = token
        resp = self._client.list_users(**kwargs)
        principals = [
            Principal(name=u.get("UserName") or u["UserId"], key=u["UserId"])
            for u in resp.get("Users", [])
        ]
        return Page(principals=principals, next_token=resp.get("NextToken"))

    def _group_name_map(self) -> dict[str, str]:
        # Called from many worker threads; list the groups only once
        with self._group_names_lock:
            if self._group_names is None:
                groups = self._paginate(
                    "list_groups", "Groups",
                    IdentityStoreId=self._identity_store_id,
                )
                self._group_names = {
                    g["GroupId"]: g.get("DisplayName") or g["GroupId"] for g in groups
                }
                logger.info("Loaded %d Identity Center groups", len(self._group_names),
                            extra={"records": len(self._group_names)})
            return self._group_names

    def list_groups_for_principal(self, principal: Principal) -> list[str]:
        memberships = self._paginate(
            "list_group_memberships_for_member", "GroupMemberships",
            IdentityStoreId=self._identity_store_id,
            MemberId={"UserId": principal.key},
        )
        names = self._group_name_map()
        return [names.get(m["GroupId"], m["GroupId"]) for m in memberships]
