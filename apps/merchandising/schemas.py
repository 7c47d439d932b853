"""Pydantic models shared by the ranking pipeline and the HTTP layer."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

# Identify the visitor by the customer id cookie value.
IDENTIFIER_BY_CID = "BY_CID"


class Store(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    store_id: int
    root_category_id: int
    max_product_limit: int = Field(default=250, ge=1)
    brand_attribute: str = "manufacturer"


class Account(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    tokens: Dict[str, str] = Field(default_factory=dict)

    def supports(self, capability: str) -> bool:
        return bool(self.tokens.get(capability))

    def token(self, capability: str) -> Optional[str]:
        return self.tokens.get(capability) or None


class CategoryFilter(BaseModel):
    category_id: Union[int, str]


class AttributeFilter(BaseModel):
    # attribute metadata may be incomplete on the platform side
    attribute_code: Optional[str] = None
    frontend_input: Optional[str] = None
    value: Any = None
    label: Optional[str] = None
    name: Optional[str] = None


ActiveFilter = Union[CategoryFilter, AttributeFilter]


class PriceRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: float
    max: float


class IncludeFilters(BaseModel):
    price: Optional[PriceRange] = None
    categories: List[str] = Field(default_factory=list)
    brands: List[Any] = Field(default_factory=list)
    custom_fields: Dict[str, List[Any]] = Field(default_factory=dict)

    def set_price(self, minimum: float, maximum: float) -> None:
        self.price = PriceRange(min=minimum, max=maximum)

    def set_categories(self, categories: List[str]) -> None:
        for category in categories:
            if category not in self.categories:
                self.categories.append(category)

    def set_brands(self, brands: List[Any]) -> None:
        self.brands = list(brands)

    def set_custom_field(self, name: str, values: List[Any]) -> None:
        self.custom_fields[name] = list(values)

    def is_empty(self) -> bool:
        return not (self.price or self.categories or self.brands or self.custom_fields)

    def to_graphql(self) -> Dict[str, Any]:
        """Shape expected by the ranking service's filter input type."""
        payload: Dict[str, Any] = {}
        if self.price is not None:
            payload["price"] = {"min": self.price.min, "max": self.price.max}
        if self.categories:
            payload["categories"] = list(self.categories)
        if self.brands:
            payload["brands"] = [str(brand) for brand in self.brands]
        if self.custom_fields:
            payload["customFields"] = [
                {"key": key, "value": [str(v) for v in values]}
                for key, values in self.custom_fields.items()
            ]
        return payload


class ExcludeFilters(IncludeFilters):
    """Same shape as the include filters; nothing populates it yet."""


class FacetBundle(BaseModel):
    model_config = ConfigDict(frozen=True)

    include_filters: IncludeFilters = Field(default_factory=IncludeFilters)
    exclude_filters: ExcludeFilters = Field(default_factory=ExcludeFilters)


class MerchandiseRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    account: Account
    facets: FacetBundle
    customer_id: str
    category: Optional[str] = None
    page_number: int = Field(ge=0)
    limit: int = Field(ge=1)
    preview_mode: bool = False
    batch_token: str = ""
    identifier_type: str = IDENTIFIER_BY_CID


class RankingResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_ids: Tuple[Any, ...] = ()
    total_primary_count: int = 0
    batch_token: Optional[str] = None
    result_id: Optional[str] = None


class ListingProduct(BaseModel):
    entity_id: int
    sku: str
    name: str
    price: float


class CategoryListingResponse(BaseModel):
    category_id: int
    page: int
    page_size: int
    sort: str
    total_count: int
    products: List[ListingProduct] = Field(default_factory=list)
    debug: dict = Field(default_factory=dict)
