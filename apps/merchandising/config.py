"""Environment driven settings for the merchandising service.

Everything configurable lives on :class:`Settings`. Stores and the account each
store is connected to are described by ``MERCH_STORES`` as a JSON list, e.g.::

    [{"code": "default", "store_id": 1, "root_category_id": 1,
      "max_product_limit": 100, "brand_attribute": "manufacturer",
      "account": {"name": "shop-123", "tokens": {"graphql": "secret"}}}]
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parents[2] / "data" / "sample_catalog.json"

# Capability an account needs before category merchandising can be requested.
GRAPHQL_CAPABILITY = "graphql"


class AccountSettings(BaseModel):
    name: str
    tokens: Dict[str, str] = Field(default_factory=dict)


class StoreSettings(BaseModel):
    code: str
    store_id: int
    root_category_id: int
    max_product_limit: Optional[int] = None
    brand_attribute: Optional[str] = None
    account: Optional[AccountSettings] = None


class Settings(BaseModel):
    graphql_url: str = "https://api.nosto.com/v1/graphql"
    request_timeout: float = 10.0
    database_url: str = "sqlite+pysqlite:///:memory:"
    catalog_path: Path = DEFAULT_CATALOG_PATH
    customer_cookie: str = "2c.cId"
    preview_cookie: str = "nostopreview"
    personalized_sort_key: str = "nosto-personalized"
    max_product_limit: int = Field(default=250, ge=1)
    brand_attribute: str = "manufacturer"
    log_level: str = "INFO"
    stores: List[StoreSettings] = Field(default_factory=list)

    def store_by_code(self, code: str) -> Optional[StoreSettings]:
        for store in self.stores:
            if store.code == code:
                return store
        return None


def _default_stores() -> List[dict]:
    return [
        {
            "code": "default",
            "store_id": 1,
            "root_category_id": 1,
            "account": None,
        }
    ]


def _read_stores(raw: Optional[str]) -> List[dict]:
    if not raw:
        return _default_stores()
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"MERCH_STORES is not valid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise ValueError("MERCH_STORES must be a JSON list of store definitions")
    return data


def settings_from_env(environ: Optional[Dict[str, str]] = None) -> Settings:
    """Build :class:`Settings` from ``environ`` (defaults to ``os.environ``)."""
    env = os.environ if environ is None else environ
    values: dict = {"stores": _read_stores(env.get("MERCH_STORES"))}
    mapping = {
        "MERCH_GRAPHQL_URL": "graphql_url",
        "MERCH_REQUEST_TIMEOUT": "request_timeout",
        "MERCH_DATABASE_URL": "database_url",
        "MERCH_CATALOG_PATH": "catalog_path",
        "MERCH_CUSTOMER_COOKIE": "customer_cookie",
        "MERCH_PREVIEW_COOKIE": "preview_cookie",
        "MERCH_PERSONALIZED_SORT_KEY": "personalized_sort_key",
        "MERCH_MAX_PRODUCT_LIMIT": "max_product_limit",
        "MERCH_BRAND_ATTRIBUTE": "brand_attribute",
        "MERCH_LOG_LEVEL": "log_level",
    }
    for env_name, field_name in mapping.items():
        if env.get(env_name):
            values[field_name] = env[env_name]
    try:
        return Settings(**values)
    except ValidationError as exc:
        raise ValueError(f"Invalid merchandising settings: {exc}") from exc


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    return settings_from_env()
