from typing import Any, Dict, List, Optional

import pytest

from merchandising.config import DEFAULT_CATALOG_PATH
from merchandising.core.catalog_db import create_catalog_engine, create_session_factory, seed_catalog
from merchandising.errors import CategoryNotFoundError
from merchandising.schemas import Account, Store


class FakeCategoryNamer:
    def __init__(self, names: Optional[Dict[Any, Optional[str]]] = None, missing=()):
        self.names = names or {}
        self.missing = set(missing)
        self.calls: List[Any] = []

    def get_category(self, category_id, store):
        self.calls.append(category_id)
        if category_id in self.missing:
            raise CategoryNotFoundError(category_id)
        return self.names.get(category_id)


class FakeTransport:
    """Stands in for GraphQLClient: returns queued payloads or raises queued errors."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls: List[dict] = []

    def post(self, query: str, variables: Dict[str, Any], token: str) -> Dict[str, Any]:
        self.calls.append({"query": query, "variables": variables, "token": token})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def category_payload(product_ids, total=None, batch_token="batch-1", result_id="res-1"):
    return {
        "updateSession": {
            "pages": {
                "category": {
                    "primary": [{"productId": pid} for pid in product_ids],
                    "totalPrimaryCount": len(product_ids) if total is None else total,
                    "batchToken": batch_token,
                    "resultId": result_id,
                }
            }
        }
    }


@pytest.fixture
def store():
    return Store(
        code="default",
        store_id=1,
        root_category_id=1,
        max_product_limit=48,
        brand_attribute="manufacturer",
    )


@pytest.fixture
def account():
    return Account(name="shop-123", tokens={"graphql": "secret-token"})


@pytest.fixture
def session_factory():
    factory = create_session_factory(create_catalog_engine("sqlite+pysqlite:///:memory:"))
    with factory() as session:
        seed_catalog(session, DEFAULT_CATALOG_PATH)
    return factory
