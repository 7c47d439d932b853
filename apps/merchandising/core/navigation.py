"""Layered navigation for category pages.

Turns request parameters into the shopper's active filters and builds the
native (unranked) product listing query for a category page.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import Select, and_, exists, func, select
from sqlalchemy.orm import aliased, sessionmaker

from ..schemas import ActiveFilter, AttributeFilter, CategoryFilter
from .catalog_db import Attribute, AttributeOption, CategoryProduct, Product, ProductAttributeValue

logger = logging.getLogger(__name__)

CATEGORY_FILTER_PARAM = "cat"
PAGE_PARAM = "p"
LIMIT_PARAM = "product_list_limit"
ORDER_PARAM = "product_list_order"
DIRECTION_PARAM = "product_list_dir"
STORE_PARAM = "store"

RESERVED_PARAMS = {PAGE_PARAM, LIMIT_PARAM, ORDER_PARAM, DIRECTION_PARAM, STORE_PARAM}

DEFAULT_SORT_ORDER = "position"
DEFAULT_PAGE_SIZE = 12

# input kinds the native listing knows how to filter by
_OPTION_INPUTS = {"select", "multiselect"}


@dataclass
class ProductListing:
    """The platform's listing query handed to the ranking hook."""

    select: Any
    id_column: Any
    page_size: int
    current_page: int = 1


class LayerState:
    """Reads the active navigation filters from request parameters."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get_active_filters(self, params: Mapping[str, str]) -> List[ActiveFilter]:
        filters: List[ActiveFilter] = []
        candidates = {k: v for k, v in params.items() if k not in RESERVED_PARAMS}
        if not candidates:
            return filters

        with self._session_factory() as session:
            attributes: Dict[str, Attribute] = {
                attribute.code: attribute
                for attribute in session.scalars(
                    select(Attribute).where(Attribute.code.in_(list(candidates)))
                )
            }
            for code, raw in candidates.items():
                if code == CATEGORY_FILTER_PARAM:
                    filters.append(CategoryFilter(category_id=raw))
                    continue
                attribute = attributes.get(code)
                if attribute is None:
                    continue
                active = self._attribute_filter(session, attribute, raw)
                if active is not None:
                    filters.append(active)
        return filters

    def _attribute_filter(self, session, attribute: Attribute, raw: str) -> Optional[AttributeFilter]:
        base = dict(
            attribute_code=attribute.code,
            frontend_input=attribute.frontend_input,
            name=attribute.label,
        )
        if attribute.frontend_input == "price":
            bounds = parse_price_range(raw)
            if bounds is None:
                logger.debug("Ignoring malformed price filter %r", raw)
                return None
            return AttributeFilter(value=list(bounds), **base)

        if attribute.frontend_input in _OPTION_INPUTS:
            option = None
            if raw.isdigit():
                option = session.get(AttributeOption, int(raw))
            if option is None or option.attribute_code != attribute.code:
                logger.debug("Ignoring unknown option %r for attribute %s", raw, attribute.code)
                return None
            return AttributeFilter(value=option.id, label=option.label, **base)

        return AttributeFilter(value=raw, **base)


def parse_price_range(raw: str) -> Optional[tuple]:
    """Parse ``"50-100"`` into ``(50.0, 100.0)``; anything else gives ``None``."""
    parts = str(raw).split("-")
    if len(parts) != 2:
        return None
    try:
        return float(parts[0]), float(parts[1])
    except ValueError:
        return None


def build_native_listing(
    category_id: int,
    active_filters: List[ActiveFilter],
    *,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    sort_order: str = DEFAULT_SORT_ORDER,
    direction: str = "asc",
) -> ProductListing:
    stmt = (
        select(Product)
        .join(CategoryProduct, CategoryProduct.product_id == Product.entity_id)
        .where(CategoryProduct.category_id == category_id)
    )
    for active in active_filters:
        stmt = _apply_native_filter(stmt, active)

    descending = direction.lower() == "desc"
    if sort_order == "name":
        columns = [Product.name]
    elif sort_order == "price":
        columns = [Product.price]
    else:
        columns = [CategoryProduct.position]
    stmt = stmt.order_by(*[c.desc() if descending else c.asc() for c in columns], Product.entity_id)
    return ProductListing(
        select=stmt,
        id_column=Product.entity_id,
        page_size=page_size,
        current_page=page,
    )


def _apply_native_filter(stmt: Select, active: ActiveFilter) -> Select:
    if isinstance(active, CategoryFilter):
        membership = aliased(CategoryProduct)
        return stmt.where(
            exists().where(
                and_(
                    membership.product_id == Product.entity_id,
                    membership.category_id == _as_int(active.category_id),
                )
            )
        )
    if active.frontend_input == "price" and isinstance(active.value, list):
        return stmt.where(Product.price.between(min(active.value), max(active.value)))
    if active.frontend_input in _OPTION_INPUTS or active.frontend_input == "boolean":
        return stmt.where(
            exists().where(
                and_(
                    ProductAttributeValue.product_id == Product.entity_id,
                    ProductAttributeValue.attribute_code == active.attribute_code,
                    ProductAttributeValue.value == str(active.value),
                )
            )
        )
    return stmt


def count_rows(stmt: Select) -> Select:
    return select(func.count()).select_from(stmt.order_by(None).subquery())


def _as_int(value: Any) -> Any:
    try:
        return int(value)
    except (TypeError, ValueError):
        return value
