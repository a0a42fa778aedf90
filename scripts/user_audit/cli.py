"""CLI entry point: list users, filter them, write the report."""

from __future__ import annotations

import argparse
import dataclasses
import importlib
import logging
import os
import sys
from typing import Optional, Sequence

from scripts.user_audit.base_directory import BaseDirectory
from scripts.user_audit.config import OUTPUT_FORMATS, AuditConfig, load_config
from scripts.user_audit.errors import ConfigurationError, RemoteFetchError
from scripts.user_audit.logging_config import configure_logging
from scripts.user_audit.models import AuditResult
from scripts.user_audit.pipeline import AuditPipeline
from scripts.user_audit.progress import make_progress
from scripts.user_audit.report import make_sink

logger = logging.getLogger("user_audit.cli")

EXIT_OK = 0
EXIT_REMOTE_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_ITEM_ERRORS = 3
EXIT_OUTPUT_ERROR = 4

MAX_LISTED_FAILURES = 5

DIRECTORY_REGISTRY: dict[str, tuple[str, str]] = {
    # name -> (module_path, class_name)
    "aws_iam": ("scripts.user_audit.directories.aws_iam", "AwsIamDirectory"),
    "aws_identity_center": (
        "scripts.user_audit.directories.aws_identity_center",
        "AwsIdentityCenterDirectory",
    ),
}


def get_directory(name: str, config: AuditConfig) -> BaseDirectory:
    """Instantiate a directory by name."""
    entry = DIRECTORY_REGISTRY.get(name)
    if not entry:
        raise ConfigurationError(
            f"Unknown provider {name!r}, expected one of {', '.join(DIRECTORY_REGISTRY)}"
        )
    module_path, class_name = entry
    module = importlib.import_module(module_path)
    cls = getattr(module, class_name)
    return cls(config)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="user-audit",
        description="List directory users filtered by user name and group name regexes",
    )
    parser.add_argument(
        "-u", "--users",
        nargs="+",
        action="extend",
        metavar="PATTERN",
        help="Regex matching user names (any may match)",
    )
    parser.add_argument(
        "-g", "--groups",
        nargs="+",
        action="extend",
        metavar="PATTERN",
        help="Regex matching group names (any may match); enables the group lookup",
    )
    parser.add_argument(
        "--provider", "-p",
        choices=sorted(DIRECTORY_REGISTRY),
        help="Directory to query (default: aws_iam)",
    )
    parser.add_argument(
        "--concurrency", "-c",
        type=int,
        help="Maximum group lookups in flight (default: 10)",
    )
    parser.add_argument("--output", "-o", help="Output file (default: awsusers.csv)")
    parser.add_argument("--format", "-f", choices=OUTPUT_FORMATS, help="Output format")
    parser.add_argument(
        "--include-groups",
        action="store_true",
        help="Add a groups column to the CSV report",
    )
    parser.add_argument(
        "--fail-on-item-errors",
        action="store_true",
        help="Exit with status 3 if any group lookup failed",
    )
    parser.add_argument("--no-progress", action="store_true", help="Disable the progress bar")
    parser.add_argument("--log-level", help="Logging level (default: LOG_LEVEL or INFO)")
    return parser


def apply_args(config: AuditConfig, args: argparse.Namespace) -> AuditConfig:
    """Overlay the flags that were given on top of the environment config."""
    overrides: dict = {}
    if args.users:
        overrides["name_filters"] = tuple(args.users)
    if args.groups:
        overrides["group_filters"] = tuple(args.groups)
    if args.provider:
        overrides["provider"] = args.provider
    if args.concurrency is not None:
        overrides["concurrency"] = args.concurrency
    if args.output:
        overrides["output_path"] = args.output
    if args.format:
        overrides["output_format"] = args.format
    if args.include_groups:
        overrides["include_groups"] = True
    if args.fail_on_item_errors:
        overrides["fail_on_item_errors"] = True
    return dataclasses.replace(config, **overrides)


def _log_failures(result: AuditResult) -> None:
    if not result.failures:
        return
    names = [f.principal for f in result.failures[:MAX_LISTED_FAILURES]]
    more = len(result.failures) - len(names)
    logger.warning(
        "Group lookup failed for %d user(s): %s%s",
        len(result.failures),
        ", ".join(names),
        f" and {more} more" if more else "",
        extra={"records": len(result.failures)},
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    configure_logging(
        args.log_level or os.environ.get("LOG_LEVEL", "INFO"),
        json_format=os.environ.get("AUDIT_LOG_FORMAT", "json").lower() != "text",
    )

    try:
        config = apply_args(load_config(), args)
        directory = get_directory(config.provider, config)
        pipeline = AuditPipeline(
            directory,
            config,
            sink=make_sink(config),
            progress=make_progress(enabled=not args.no_progress),
        )
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIG_ERROR

    try:
        result = pipeline.run_sync()
    except RemoteFetchError as exc:
        logger.error("Audit failed: %s", exc, exc_info=exc.cause is not None)
        return EXIT_REMOTE_ERROR
    except OSError as exc:
        logger.error("Could not write report: %s", exc)
        return EXIT_OUTPUT_ERROR

    _log_failures(result)
    if result.failures and config.fail_on_item_errors:
        return EXIT_ITEM_ERRORS
    return EXIT_OK


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
