"""Audit pipeline: list -> filter by name -> fetch groups -> filter by group -> report."""

from __future__ import annotations

import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Callable, Optional, Protocol, TypeVar

from scripts.user_audit.base_directory import BaseDirectory
from scripts.user_audit.config import AuditConfig
from scripts.user_audit.errors import ConfigurationError, PerItemFetchError
from scripts.user_audit.filters import compile_patterns, filter_by_groups, filter_by_name
from scripts.user_audit.models import AuditResult, Page, Principal
from scripts.user_audit.paginator import fetch_all
from scripts.user_audit.pool import run_pool
from scripts.user_audit.progress import NullProgress, ProgressReporter

logger = logging.getLogger("user_audit.pipeline")

T = TypeVar("T")


class PipelineStage(str, Enum):
    LISTING = "listing"
    NAME_FILTERING = "name_filtering"
    GROUP_FETCHING = "group_fetching"
    GROUP_FILTERING = "group_filtering"
    REPORTING = "reporting"
    DONE = "done"


class Sink(Protocol):
    def write(self, result: AuditResult) -> None: ...


class AuditPipeline:
    """Runs one audit against a directory.

    Patterns and the concurrency limit are validated here, so a bad setting
    fails before the first remote call.
    """

    def __init__(
        self,
        directory: BaseDirectory,
        config: AuditConfig,
        sink: Optional[Sink] = None,
        progress: Optional[ProgressReporter] = None,
    ) -> None:
        if config.concurrency < 1:
            raise ConfigurationError(
                f"Concurrency limit must be at least 1, got {config.concurrency}"
            )
        self.directory = directory
        self.config = config
        self._name_patterns = compile_patterns(config.name_filters)
        self._group_patterns = compile_patterns(config.group_filters)
        self._sink = sink
        self._progress = progress or NullProgress()
        self._executor: Optional[ThreadPoolExecutor] = None
        self.stage: Optional[PipelineStage] = None

    def _enter(self, stage: PipelineStage, count: int) -> None:
        self.stage = stage
        logger.info(
            "Stage %s (%d principals)",
            stage.value,
            count,
            extra={
                "stage": stage.value,
                "records": count,
                "directory": self.directory.DIRECTORY_NAME,
            },
        )

    async def _call(self, func: Callable[..., T], *args) -> T:
        """Run a blocking directory call on the pipeline's thread pool."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, func, *args)

    async def _list_page(self, token: Optional[str]) -> Page:
        return await self._call(self.directory.list_principals_page, token)

    async def _fetch_groups(self, principal: Principal) -> list[str]:
        return await self._call(self.directory.list_groups_for_principal, principal)

    async def run(self) -> AuditResult:
        started = time.monotonic()
        # One thread per pool slot so the executor never narrows the cap
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.concurrency,
            thread_name_prefix="user-audit",
        )
        try:
            result = await self._run_stages()
        finally:
            self._executor.shutdown(wait=True)
            self._executor = None

        logger.info(
            "Audit complete: %d of %d principals matched, %d group fetch failure(s)",
            len(result.principals),
            result.listed,
            len(result.failures),
            extra={
                "records": len(result.principals),
                "duration_s": round(time.monotonic() - started, 3),
            },
        )
        return result

    async def _run_stages(self) -> AuditResult:
        self._enter(PipelineStage.LISTING, 0)
        principals = await fetch_all(self._list_page)
        listed = len(principals)

        if self._name_patterns:
            self._enter(PipelineStage.NAME_FILTERING, len(principals))
            principals = filter_by_name(principals, self._name_patterns)
            logger.info("%d users with matching name", len(principals),
                        extra={"records": len(principals)})

        groups: Optional[list[list[str]]] = None
        failures: list[PerItemFetchError] = []
        if self._group_patterns:
            self._enter(PipelineStage.GROUP_FETCHING, len(principals))
            results = await run_pool(
                principals,
                self._fetch_groups,
                self.config.concurrency,
                progress=self._progress.report,
            )

            group_sets: list[Optional[list[str]]] = []
            for principal, item in zip(principals, results):
                if item.ok:
                    group_sets.append(item.value)
                    continue
                failure = PerItemFetchError(principal.name, item.error)
                failures.append(failure)
                group_sets.append(None)
                logger.warning("%s", failure, extra={"principal": principal.name})

            self._enter(PipelineStage.GROUP_FILTERING, len(principals))
            keep = filter_by_groups(principals, group_sets, self._group_patterns)
            principals = [principals[i] for i in keep]
            groups = [group_sets[i] or [] for i in keep]
            logger.info("%d users with matching groups", len(principals),
                        extra={"records": len(principals)})

        result = AuditResult(
            principals=principals,
            groups=groups,
            failures=failures,
            listed=listed,
        )

        self._enter(PipelineStage.REPORTING, len(principals))
        if self._sink is not None:
            self._sink.write(result)

        self._enter(PipelineStage.DONE, len(principals))
        return result

    def run_sync(self) -> AuditResult:
        return asyncio.run(self.run())
