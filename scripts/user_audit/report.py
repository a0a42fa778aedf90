"""Report sinks: where the final principal list ends up."""

from __future__ import annotations

import csv
import json
import logging
import sys
from dataclasses import dataclass
from typing import Optional, TextIO
from urllib.parse import quote

from scripts.user_audit.config import DEFAULT_LOOKUP_URL, AuditConfig
from scripts.user_audit.errors import ConfigurationError
from scripts.user_audit.models import AuditResult, Principal

logger = logging.getLogger("user_audit.report")


@dataclass(frozen=True)
class ReportRow:
    principal: Principal
    groups: Optional[list[str]]
    lookup_url: str


def build_rows(result: AuditResult, lookup_url_template: str = DEFAULT_LOOKUP_URL) -> list[ReportRow]:
    return [
        ReportRow(
            principal=principal,
            groups=result.groups_for(index),
            lookup_url=lookup_url_template.format(name=quote(principal.name, safe="@")),
        )
        for index, principal in enumerate(result.principals)
    ]


class CsvSink:
    """``name,lookup_url`` per line, no header; optional ``;``-joined groups column."""

    def __init__(
        self,
        path: str,
        lookup_url_template: str = DEFAULT_LOOKUP_URL,
        include_groups: bool = False,
    ) -> None:
        self.path = path
        self.lookup_url_template = lookup_url_template
        self.include_groups = include_groups

    def write(self, result: AuditResult) -> None:
        rows = build_rows(result, self.lookup_url_template)
        with open(self.path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f, lineterminator="\n")
            for row in rows:
                record = [row.principal.name, row.lookup_url]
                if self.include_groups:
                    record.append(";".join(row.groups or []))
                writer.writerow(record)
        logger.info("Wrote %d rows to %s", len(rows), self.path,
                    extra={"records": len(rows)})


class JsonSink:
    def __init__(self, path: str, lookup_url_template: str = DEFAULT_LOOKUP_URL) -> None:
        self.path = path
        self.lookup_url_template = lookup_url_template

    def write(self, result: AuditResult) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(result_to_dict(result, self.lookup_url_template), f, indent=2)
        logger.info("Wrote %d principals to %s", len(result.principals), self.path,
                    extra={"records": len(result.principals)})


class StdoutSink:
    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream or sys.stdout

    def write(self, result: AuditResult) -> None:
        for principal in result.principals:
            self._stream.write(f"{principal.name}\n")
        self._stream.flush()


def result_to_dict(result: AuditResult, lookup_url_template: str = DEFAULT_LOOKUP_URL) -> dict:
    """JSON-ready view of a result, including the failure diagnostics."""
    return {
        "listed": result.listed,
        "matched": len(result.principals),
        "principals": [
            {
                "name": row.principal.name,
                "id": row.principal.key,
                "groups": row.groups,
                "lookup_url": row.lookup_url,
            }
            for row in build_rows(result, lookup_url_template)
        ],
        "failures": [
            {"principal": failure.principal, "error": str(failure.cause)}
            for failure in result.failures
        ],
    }


def make_sink(config: AuditConfig):
    if config.output_format == "csv":
        return CsvSink(config.output_path, config.lookup_url_template, config.include_groups)
    if config.output_format == "json":
        return JsonSink(config.output_path, config.lookup_url_template)
    if config.output_format == "stdout":
        return StdoutSink()
    raise ConfigurationError(f"Unknown output format {config.output_format!r}")
