"""AWS Lambda handler for user audits.

Each invocation runs one audit and returns the matching users in the
response body; nothing is written to disk.

Event format:
  {"user_filters": ["^a"], "group_filters": ["^adm"]}
  {"user_filters": "^a", "provider": "aws_identity_center", "concurrency": 5}
"""

from __future__ import annotations

import dataclasses
import json
import logging
import os
import sys

# Ensure the project root is on sys.path for Lambda packaging
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "..", ".."))

from scripts.user_audit.cli import get_directory
from scripts.user_audit.config import load_config
from scripts.user_audit.errors import ConfigurationError, RemoteFetchError
from scripts.user_audit.logging_config import configure_logging
from scripts.user_audit.pipeline import AuditPipeline
from scripts.user_audit.report import result_to_dict

logger = logging.getLogger("user_audit.lambda")


def _patterns(event: dict, key: str) -> tuple:
    """A single pattern may be given as a bare string."""
    value = event.get(key)
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        return tuple(value)
    raise ConfigurationError(f"{key} must be a string or a list of strings")


def handler(event: dict, context) -> dict:
    """Lambda entry point."""
    configure_logging(os.environ.get("LOG_LEVEL", "INFO"))

    try:
        config = load_config()
        overrides: dict = {}
        if "user_filters" in event:
            overrides["name_filters"] = _patterns(event, "user_filters")
        if "group_filters" in event:
            overrides["group_filters"] = _patterns(event, "group_filters")
        if "provider" in event:
            overrides["provider"] = event["provider"]
        if "concurrency" in event:
            overrides["concurrency"] = int(event["concurrency"])
        config = dataclasses.replace(config, **overrides)

        logger.info("Lambda invoked for provider=%s", config.provider)
        pipeline = AuditPipeline(get_directory(config.provider, config), config)
    except (ConfigurationError, TypeError, ValueError) as exc:
        logger.error("Invalid audit request: %s", exc)
        return {"statusCode": 400, "body": json.dumps({"error": str(exc)})}

    try:
        result = pipeline.run_sync()
    except RemoteFetchError as exc:
        logger.error("Audit failed: %s", exc, exc_info=True)
        return {"statusCode": 500, "body": json.dumps({"error": str(exc)})}

    body = result_to_dict(result, config.lookup_url_template)
    body["provider"] = config.provider
    return {"statusCode": 200, "body": json.dumps(body)}
