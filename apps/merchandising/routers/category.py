"""Category listing endpoint.

This is the platform side of the integration: it builds the native listing for
a category page, hands it to the merchandising pipeline once and renders
whatever query comes back.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import sessionmaker

from ..core.accounts import AccountRegistry
from ..core.catalog_db import Category
from ..core.navigation import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_SORT_ORDER,
    LayerState,
    build_native_listing,
    count_rows,
)
from ..core.pipeline import MerchandisingPipeline, RankedListing
from ..core.render_pass import RenderPass
from ..dependencies import (
    get_account_registry,
    get_layer_state,
    get_pipeline,
    get_session_factory,
)
from ..schemas import CategoryListingResponse, ListingProduct

router = APIRouter()

MAX_PAGE = 100_000


def _page_size(raw: Optional[str], max_size: int) -> int:
    """Page size from the request; anything unusable gives the default."""
    if not raw or not raw.isdigit() or len(raw) > len(str(max_size)):
        return DEFAULT_PAGE_SIZE
    try:
        size = int(raw)
    except ValueError:
        return DEFAULT_PAGE_SIZE
    if 0 < size <= max_size:
        return size
    return DEFAULT_PAGE_SIZE


@router.get("/category/{category_id}", response_model=CategoryListingResponse)
def category_listing(
    category_id: int,
    request: Request,
    response: Response,
    p: int = 1,
    product_list_limit: Optional[str] = None,
    product_list_order: Optional[str] = None,
    product_list_dir: str = "asc",
    store: str = "default",
    accounts: AccountRegistry = Depends(get_account_registry),
    session_factory: sessionmaker = Depends(get_session_factory),
    layer_state: LayerState = Depends(get_layer_state),
    pipeline: MerchandisingPipeline = Depends(get_pipeline),
) -> CategoryListingResponse:
    current_store = accounts.get_store(store)
    if current_store is None:
        raise HTTPException(status_code=404, detail=f"Unknown store '{store}'")
    with session_factory() as session:
        if session.get(Category, category_id) is None:
            raise HTTPException(status_code=404, detail=f"Unknown category {category_id}")

    page = min(max(p, 1), MAX_PAGE)
    page_size = _page_size(product_list_limit, current_store.max_product_limit)
    sort_order = product_list_order or DEFAULT_SORT_ORDER
    active_filters = layer_state.get_active_filters(dict(request.query_params))
    listing = build_native_listing(
        category_id,
        active_filters,
        page=page,
        page_size=page_size,
        sort_order=sort_order,
        direction=product_list_dir,
    )

    render_pass = RenderPass(
        store=current_store,
        cookies=dict(request.cookies),
        current_category_id=category_id,
        sort_order=sort_order,
    )
    outcome = pipeline.run(render_pass, listing, active_filters)

    debug: dict = {"active_filters": len(active_filters)}
    with session_factory() as session:
        if isinstance(outcome, RankedListing):
            # the ranking already covers exactly this page
            stmt = listing.select.limit(len(outcome.product_ids))
            total_count = outcome.result.total_primary_count
            debug.update(outcome="ranked", result_id=outcome.result.result_id)
        else:
            stmt = listing.select.limit(page_size).offset((page - 1) * page_size)
            total_count = session.scalar(count_rows(listing.select)) or 0
            debug.update(outcome="native", reason=outcome.reason)
        products = [
            ListingProduct(
                entity_id=product.entity_id,
                sku=product.sku,
                name=product.name,
                price=product.price,
            )
            for product in session.scalars(stmt)
        ]

    timing = render_pass.server_timing.header_value()
    if timing:
        response.headers["Server-Timing"] = timing

    return CategoryListingResponse(
        category_id=category_id,
        page=page,
        page_size=page_size,
        sort=sort_order,
        total_count=total_count,
        products=products,
        debug=debug,
    )
