"""Assemble the request sent to the ranking service for one listing page."""

from __future__ import annotations

import logging
import math
from numbers import Number
from typing import Any, Optional

from ..config import GRAPHQL_CAPABILITY, Settings
from ..errors import MissingAccountException, MissingTokenException
from ..schemas import FacetBundle, MerchandiseRequest, Store
from .accounts import AccountRegistry
from .categories import CategoryNamer
from .facets import to_bool
from .ranking_client import VisitSessionService
from .render_pass import RenderPass

logger = logging.getLogger(__name__)


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            try:
                value = float(text)
            except ValueError:
                return None
    if isinstance(value, Number):
        try:
            number = float(value)
        except (TypeError, ValueError, OverflowError):
            return None
        if math.isnan(number) or math.isinf(number):
            return None
        return int(number)
    return None


def sanitize_limit(store: Store, limit: Any) -> int:
    max_limit = store.max_product_limit
    value = _as_int(limit)
    if value is None or value <= 0 or value > max_limit:
        logger.debug("Limit set to %d - original limit was %s", max_limit, limit)
        return max_limit
    return value


class RequestParamsService:
    def __init__(
        self,
        settings: Settings,
        accounts: AccountRegistry,
        category_namer: CategoryNamer,
        visit_sessions: VisitSessionService,
    ):
        self._settings = settings
        self._accounts = accounts
        self._category_namer = category_namer
        self._visit_sessions = visit_sessions

    def create_request_params(
        self,
        render_pass: RenderPass,
        facets: FacetBundle,
        page_number: int,
        limit: Any,
    ) -> MerchandiseRequest:
        """Build the request for ``page_number`` (0-based).

        Raises :class:`MissingAccountException`, :class:`MissingTokenException`
        or :class:`SessionCreationException`; a category that cannot be found
        raises :class:`CategoryNotFoundError`.
        """
        store = render_pass.store
        account = self._accounts.find_account(store)
        if account is None:
            raise MissingAccountException(store)
        if not account.supports(GRAPHQL_CAPABILITY):
            raise MissingTokenException(store, GRAPHQL_CAPABILITY)

        customer_id = render_pass.cookies.get(self._settings.customer_cookie)
        if not customer_id:
            # a fresh session the service will not attribute to a real visitor
            customer_id = self._visit_sessions.get_new_session(store, account)

        limit = sanitize_limit(store, limit)
        category = self._category_namer.get_category(render_pass.current_category_id, store)
        preview_mode = to_bool(render_pass.cookies.get(self._settings.preview_cookie, ""))

        batch_token = ""
        state = render_pass.last_results.peek()
        if state.matches(limit, page_number):
            batch_token = state.batch_token

        return MerchandiseRequest(
            account=account,
            facets=facets,
            customer_id=customer_id,
            category=category,
            page_number=page_number,
            limit=limit,
            preview_mode=preview_mode,
            batch_token=batch_token,
        )
