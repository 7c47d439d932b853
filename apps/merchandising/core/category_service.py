from __future__ import annotations

import logging
from typing import Any, Optional

from ..schemas import FacetBundle, MerchandiseRequest, RankingResult
from .events import CmpResultsFetched, EventBus
from .ranking_client import RemoteRankingClient
from .render_pass import RenderPass
from .request_params import RequestParamsService

logger = logging.getLogger(__name__)

TIME_PROF_GRAPHQL_QUERY = "cmp_graphql_query"


class StateAwareCategoryService:
    """Fetches a ranking for one page and remembers it on the render pass."""

    def __init__(
        self,
        request_params: RequestParamsService,
        ranking_client: RemoteRankingClient,
        event_bus: EventBus,
    ):
        self._request_params = request_params
        self._ranking_client = ranking_client
        self._event_bus = event_bus

    def get_personalisation_result(
        self,
        render_pass: RenderPass,
        facets: FacetBundle,
        page_number: int,
        limit: Any,
    ) -> RankingResult:
        request = self._request_params.create_request_params(render_pass, facets, page_number, limit)
        result = render_pass.server_timing.instrument(
            lambda: self._get_merchandise_results(request),
            TIME_PROF_GRAPHQL_QUERY,
        )
        render_pass.last_results.record(result, request.limit, request.page_number)
        return result

    def get_last_result(self, render_pass: RenderPass) -> Optional[RankingResult]:
        return render_pass.last_results.peek().last_result

    def _get_merchandise_results(self, request: MerchandiseRequest) -> RankingResult:
        result = self._ranking_client.execute(request)
        self._event_bus.publish(
            CmpResultsFetched(result=result, limit=request.limit, page_number=request.page_number)
        )
        logger.debug(
            'Got %d / %d (total) product ids for category "%s", using page num: %d, using limit: %d',
            len(result.product_ids),
            result.total_primary_count,
            request.category,
            request.page_number,
            request.limit,
        )
        return result
