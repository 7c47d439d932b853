"""Map the shopper's active navigation filters to ranking service facets.

Every active filter is translated into one include-filter entry: the category
filter becomes a category path, price becomes a range, the store's brand
attribute becomes the brand list and everything else ends up as a custom field
keyed by its attribute code. Exclude filters are never populated.
"""

from __future__ import annotations

import logging
from numbers import Number
from typing import Any, List, Optional, Sequence

from ..errors import CategoryNotFoundError, FacetValueException
from ..schemas import (
    ActiveFilter,
    AttributeFilter,
    CategoryFilter,
    ExcludeFilters,
    FacetBundle,
    IncludeFilters,
    Store,
)
from .categories import CategoryNamer

logger = logging.getLogger(__name__)

_FALSE_STRINGS = {"", "0", "false", "no", "off"}


def to_bool(value: Any) -> bool:
    """Truthiness the way the platform stores flags: ``"0"`` and ``"no"`` are false."""
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


def yes_no(value: Any) -> str:
    # boolean attributes are stored as text by the ranking service
    return "Yes" if to_bool(value) else "No"


def make_list_from_value(store: Store, name: str, value: Any) -> List[Any]:
    """Coerce a facet value into the list form the ranking service expects."""
    if isinstance(value, bool):
        return [yes_no(value)]
    if isinstance(value, (str, Number)):
        return [value]
    if isinstance(value, (list, tuple)):
        return list(value)
    raise FacetValueException(store, name, value)


class BuildWebFacetService:
    def __init__(self, category_namer: CategoryNamer):
        self._category_namer = category_namer

    def build_facets(self, active_filters: Sequence[ActiveFilter], store: Store) -> FacetBundle:
        """Normalize ``active_filters``; a failing value keeps what was built so far."""
        include_filters = IncludeFilters()
        try:
            self.populate_filters(include_filters, active_filters, store)
        except FacetValueException as exc:
            logger.warning("Facet normalization stopped early: %s", exc)
        except Exception:
            logger.exception("Unexpected error while building facets for store %s", store.code)
        return FacetBundle(include_filters=include_filters, exclude_filters=ExcludeFilters())

    def normalize(self, active_filters: Sequence[ActiveFilter], store: Store) -> IncludeFilters:
        include_filters = IncludeFilters()
        self.populate_filters(include_filters, active_filters, store)
        return include_filters

    def populate_filters(
        self,
        include_filters: IncludeFilters,
        active_filters: Sequence[ActiveFilter],
        store: Store,
    ) -> None:
        brand = (store.brand_attribute or "").lower()
        for active in active_filters:
            self._map_include_filter(include_filters, active, store, brand)

    def _map_include_filter(
        self,
        include_filters: IncludeFilters,
        active: ActiveFilter,
        store: Store,
        brand: str,
    ) -> None:
        if isinstance(active, CategoryFilter):
            category = self._category_name(active.category_id, store)
            if category is None:
                logger.debug("Could not get category from filters (id %s)", active.category_id)
                return
            self._map_value_to_filter(include_filters, store, brand, "category", category)
            return

        if not isinstance(active, AttributeFilter):
            logger.debug("Skipping unsupported filter %r", active)
            return

        frontend_input = active.frontend_input
        if frontend_input is None:
            return

        if frontend_input == "price":
            value = active.value
        elif frontend_input in ("select", "multiselect"):
            value = active.label
        elif frontend_input == "boolean":
            value = to_bool(active.value)
        elif frontend_input == "date":
            # dates cannot be expressed as facets
            return
        else:
            logger.debug('Cannot build include filter for "%s" frontend input type', frontend_input)
            return

        if not isinstance(active.attribute_code, str) or not active.attribute_code:
            logger.debug('Cannot build include filter for "%s" attribute', active.name)
            return
        self._map_value_to_filter(include_filters, store, brand, active.attribute_code, value)

    def _category_name(self, category_id: Any, store: Store) -> Optional[str]:
        try:
            return self._category_namer.get_category(category_id, store)
        except CategoryNotFoundError as exc:
            logger.debug("Skipping category filter: %s", exc)
            return None

    def _map_value_to_filter(
        self,
        include_filters: IncludeFilters,
        store: Store,
        brand: str,
        name: str,
        value: Any,
    ) -> None:
        key = name.lower()
        if key == "price":
            low, high = _price_bounds(store, name, value)
            include_filters.set_price(low, high)
        elif key == "new":
            include_filters.set_custom_field(name, make_list_from_value(store, name, yes_no(value)))
        elif key == "category":
            include_filters.set_categories([value])
        elif brand and key == brand:
            include_filters.set_brands(make_list_from_value(store, name, value))
        else:
            include_filters.set_custom_field(name, make_list_from_value(store, name, value))


def _price_bounds(store: Store, name: str, value: Any) -> tuple:
    if isinstance(value, (list, tuple)) and value:
        numbers = [v for v in value if isinstance(v, Number) and not isinstance(v, bool)]
        if len(numbers) == len(value):
            return min(numbers), max(numbers)
    raise FacetValueException(store, name, value)
