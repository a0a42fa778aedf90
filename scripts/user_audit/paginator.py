"""Cursor pagination over a listing endpoint."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from scripts.user_audit.errors import PaginationError
from scripts.user_audit.models import Page, Principal

logger = logging.getLogger("user_audit.paginator")

ListPage = Callable[[Optional[str]], Awaitable[Page]]


async def fetch_all(list_page: ListPage) -> list[Principal]:
    """Call ``list_page`` until a page comes back without a continuation token.

    Pages are fetched one at a time since each request needs the previous
    page's token. Any failure aborts the listing with a PaginationError and
    the pages collected so far are dropped.
    """
    principals: list[Principal] = []
    token: Optional[str] = None
    page_index = 0

    while True:
        try:
            page = await list_page(token)
        except Exception as exc:
            logger.error(
                "Listing page %d failed: %s",
                page_index,
                exc,
                extra={"page_index": page_index},
            )
            raise PaginationError(page_index, exc) from exc

        principals.extend(page.principals)
        logger.debug(
            "Fetched listing page %d (%d principals)",
            page_index,
            len(page.principals),
            extra={"page_index": page_index, "records": len(page.principals)},
        )
        if not page.has_more:
            break
        token = page.next_token
        page_index += 1

    logger.info(
        "%d principals fetched over %d page(s)",
        len(principals),
        page_index + 1,
        extra={"records": len(principals)},
    )
    return principals
