"""Category listing re-ranking, end to end.

The pipeline is what the listing hook calls once the platform has built its
native product query. It either rewrites that query to follow the ranking
(:class:`RankedListing`) or leaves it alone and says why
(:class:`NativeListingFallback`). It never raises: a broken ranking must not
break the category page.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Sequence, Union

import requests
from sqlalchemy import Select

from ..errors import CmpError
from ..schemas import ActiveFilter, RankingResult
from .category_service import StateAwareCategoryService
from .facets import BuildWebFacetService
from .navigation import ProductListing
from .render_pass import RenderPass
from .result_applier import apply_ranking, only_scalar_values, parse_product_ids

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankedListing:
    result: RankingResult
    product_ids: List[Any] = field(default_factory=list)


@dataclass(frozen=True)
class NativeListingFallback:
    reason: str


Outcome = Union[RankedListing, NativeListingFallback]


class MerchandisingPipeline:
    def __init__(
        self,
        facet_service: BuildWebFacetService,
        category_service: StateAwareCategoryService,
        personalized_sort_key: str,
    ):
        self._facet_service = facet_service
        self._category_service = category_service
        self._personalized_sort_key = personalized_sort_key

    def run(
        self,
        render_pass: RenderPass,
        listing: ProductListing,
        active_filters: Sequence[ActiveFilter],
    ) -> Outcome:
        if render_pass.processed:
            logger.debug("Skipping listing handling, already processed for this request")
            return NativeListingFallback("already processed")
        try:
            return self._run(render_pass, listing, active_filters)
        finally:
            render_pass.processed = True

    def _run(
        self,
        render_pass: RenderPass,
        listing: ProductListing,
        active_filters: Sequence[ActiveFilter],
    ) -> Outcome:
        if render_pass.sort_order != self._personalized_sort_key:
            return NativeListingFallback("personalized sort order not selected")
        if not render_pass.is_category_page:
            return NativeListingFallback("not a category page")
        if not isinstance(listing.select, Select) or listing.id_column is None:
            logger.warning(
                "Listing for store %s is not a product query (%s)",
                render_pass.store.code,
                type(listing.select).__name__,
            )
            return NativeListingFallback("unsupported listing")

        try:
            facets = self._facet_service.build_facets(active_filters, render_pass.store)
            result = self._category_service.get_personalisation_result(
                render_pass,
                facets,
                listing.current_page - 1,
                listing.page_size,
            )
        except (CmpError, requests.RequestException) as exc:
            logger.exception("Category ranking failed for store %s", render_pass.store.code)
            return NativeListingFallback(str(exc) or type(exc).__name__)
        except Exception as exc:
            logger.exception("Unexpected error while ranking category for store %s", render_pass.store.code)
            return NativeListingFallback(f"unexpected error: {type(exc).__name__}")

        product_ids = parse_product_ids(result)
        if not product_ids or not only_scalar_values(product_ids):
            logger.debug("Got an empty ranking result for category %s", render_pass.current_category_id)
            return NativeListingFallback("empty ranking result")

        ranked = apply_ranking(result, listing.select, listing.id_column)
        if ranked is listing.select:
            return NativeListingFallback("ranked ids do not match the listing")
        listing.select = ranked
        return RankedListing(result=result, product_ids=product_ids)
