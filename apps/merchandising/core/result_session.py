from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..schemas import RankingResult


@dataclass(frozen=True)
class LastResultState:
    last_result: Optional[RankingResult] = None
    last_used_limit: Optional[int] = None
    last_fetched_page: Optional[int] = None

    @property
    def batch_token(self) -> str:
        if self.last_result is None:
            return ""
        return self.last_result.batch_token or ""

    def matches(self, limit: int, page_number: int) -> bool:
        """True when a follow-up batch for ``limit``/``page_number`` can reuse the token."""
        return (
            self.last_result is not None
            and self.last_used_limit == limit
            and self.last_fetched_page == page_number
        )


class SessionLastResultCache:
    """Remembers the last ranking result of one render pass."""

    def __init__(self) -> None:
        self._state = LastResultState()

    def record(self, result: RankingResult, limit_used: int, page_used: int) -> None:
        self._state = LastResultState(
            last_result=result,
            last_used_limit=limit_used,
            last_fetched_page=page_used,
        )

    def peek(self) -> LastResultState:
        return self._state

    @property
    def is_populated(self) -> bool:
        return self._state.last_result is not None
