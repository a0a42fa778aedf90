"""Configuration via environment variables, overridable from the CLI.

Supports:
  - Environment variables (local dev, Lambda)
  - .env files loaded with python-dotenv
  - Default AWS credential chain (no credentials are read here)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from scripts.user_audit.errors import ConfigurationError

DEFAULT_CONCURRENCY = 10  # keeps ListGroupsForUser under the IAM throttling threshold
DEFAULT_LOOKUP_URL = "https://www.office.com/search?q={name}"
OUTPUT_FORMATS = ("csv", "json", "stdout")


@dataclass(frozen=True)
class AwsConfig:
    region: Optional[str] = None  # None = boto3 default resolution
    max_attempts: int = 5
    retry_mode: str = "adaptive"


@dataclass(frozen=True)
class IdentityCenterConfig:
    identity_store_id: str


@dataclass(frozen=True)
class AuditConfig:
    provider: str = "aws_iam"
    name_filters: tuple[str, ...] = ()
    group_filters: tuple[str, ...] = ()
    concurrency: int = DEFAULT_CONCURRENCY
    output_path: str = "awsusers.csv"
    output_format: str = "csv"
    lookup_url_template: str = DEFAULT_LOOKUP_URL
    include_groups: bool = False
    fail_on_item_errors: bool = False
    aws: AwsConfig = field(default_factory=AwsConfig)
    identity_center: Optional[IdentityCenterConfig] = None


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


def _bool_env(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes")


def _list_env(name: str) -> tuple[str, ...]:
    raw = os.environ.get(name, "")
    return tuple(s.strip() for s in raw.split(",") if s.strip())


def load_config() -> AuditConfig:
    """Load configuration from environment variables.

    Pattern syntax and the concurrency lower bound are checked by the
    pipeline, which refuses to start on invalid values.
    """
    load_dotenv()

    output_format = os.environ.get("AUDIT_OUTPUT_FORMAT", "csv").lower()
    if output_format not in OUTPUT_FORMATS:
        raise ConfigurationError(
            f"AUDIT_OUTPUT_FORMAT must be one of {', '.join(OUTPUT_FORMATS)}"
        )

    aws = AwsConfig(
        region=os.environ.get("AWS_REGION") or None,
        max_attempts=_int_env("AWS_MAX_ATTEMPTS", 5),
        retry_mode=os.environ.get("AWS_RETRY_MODE", "adaptive"),
    )

    # IAM Identity Center (optional)
    identity_center = None
    store_id = os.environ.get("AWS_IDENTITY_STORE_ID")
    if store_id:
        identity_center = IdentityCenterConfig(identity_store_id=store_id)

    return AuditConfig(
        provider=os.environ.get("AUDIT_PROVIDER", "aws_iam"),
        name_filters=_list_env("AUDIT_USER_FILTERS"),
        group_filters=_list_env("AUDIT_GROUP_FILTERS"),
        concurrency=_int_env("AUDIT_CONCURRENCY", DEFAULT_CONCURRENCY),
        output_path=os.environ.get("AUDIT_OUTPUT", "awsusers.csv"),
        output_format=output_format,
        lookup_url_template=os.environ.get("AUDIT_LOOKUP_URL", DEFAULT_LOOKUP_URL),
        include_groups=_bool_env("AUDIT_INCLUDE_GROUPS"),
        fail_on_item_errors=_bool_env("AUDIT_FAIL_ON_ITEM_ERRORS"),
        aws=aws,
        identity_center=identity_center,
    )
