from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..schemas import Store
from .result_session import SessionLastResultCache
from .server_timing import ServerTiming

CATEGORY_VIEW_ACTION = "catalog_category_view"


@dataclass
class RenderPass:
    """State owned by one category listing request.

    Created fresh for every inbound request and never shared between requests.
    """

    store: Store
    cookies: Mapping[str, str] = field(default_factory=dict)
    current_category_id: Optional[Any] = None
    full_action_name: str = CATEGORY_VIEW_ACTION
    sort_order: Optional[str] = None
    last_results: SessionLastResultCache = field(default_factory=SessionLastResultCache)
    server_timing: ServerTiming = field(default_factory=ServerTiming)
    processed: bool = False

    @property
    def is_category_page(self) -> bool:
        return self.full_action_name == CATEGORY_VIEW_ACTION
