"""In-process publish/subscribe for merchandising events.

Handlers run synchronously in registration order. A failing handler is logged
and does not stop the others: publishing is fire-and-forget for the caller.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, DefaultDict, List, Type

from ..schemas import RankingResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CmpResultsFetched:
    """Published after every successful ranking call."""

    result: RankingResult
    limit: int
    page_number: int


Handler = Callable[[object], None]


class EventBus:
    def __init__(self) -> None:
        self._handlers: DefaultDict[Type, List[Handler]] = defaultdict(list)

    def subscribe(self, event_type: Type, handler: Handler) -> None:
        self._handlers[event_type].append(handler)

    def publish(self, event: object) -> None:
        for handler in list(self._handlers.get(type(event), [])):
            try:
                handler(event)
            except Exception:
                logger.exception("Handler %r failed for %s", handler, type(event).__name__)


def log_fetched_results(event: CmpResultsFetched) -> None:
    logger.info(
        "Ranking results fetched: %d ids (total %d), page %d, limit %d, result id %s",
        len(event.result.product_ids),
        event.result.total_primary_count,
        event.page_number,
        event.limit,
        event.result.result_id,
    )
