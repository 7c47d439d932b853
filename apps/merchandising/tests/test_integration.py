import pytest
import requests
from fastapi.testclient import TestClient

from conftest import FakeTransport, category_payload

from merchandising.config import AccountSettings, Settings, StoreSettings
from merchandising.core.accounts import AccountRegistry
from merchandising.core.events import EventBus
from merchandising.dependencies import build_pipeline, get_account_registry, get_pipeline, get_session_factory
from merchandising.main import app

SETTINGS = Settings(
    stores=[
        StoreSettings(
            code="default",
            store_id=1,
            root_category_id=1,
            account=AccountSettings(name="shop-123", tokens={"graphql": "secret"}),
        )
    ]
)


@pytest.fixture
def wire(session_factory):
    """Point the app at the test catalog and a scripted ranking transport."""

    def install(*responses):
        transport = FakeTransport(*responses)
        accounts = AccountRegistry(SETTINGS)
        pipeline = build_pipeline(SETTINGS, session_factory, accounts, EventBus(), transport)
        app.dependency_overrides[get_session_factory] = lambda: session_factory
        app.dependency_overrides[get_account_registry] = lambda: accounts
        app.dependency_overrides[get_pipeline] = lambda: pipeline
        return TestClient(app), transport

    yield install
    app.dependency_overrides.clear()


def test_healthz():
    client = TestClient(app)
    assert client.get("/healthz").json() == {"status": "ok"}
    assert client.get("/").json()["personalized_sort"] == "nosto-personalized"


def test_native_listing_without_personalized_sort(wire):
    client, transport = wire()
    r = client.get("/category/3", params={"product_list_limit": "2", "p": "2"})
    assert r.status_code == 200
    body = r.json()
    assert [p["entity_id"] for p in body["products"]] == [30, 40]
    assert body["total_count"] == 4
    assert body["debug"]["outcome"] == "native"
    assert body["debug"]["reason"] == "personalized sort order not selected"
    assert transport.calls == []
    assert "Server-Timing" not in r.headers


def test_native_listing_applies_layered_filters(wire):
    client, _ = wire()
    r = client.get("/category/3", params={"color": "10"})
    assert [p["entity_id"] for p in r.json()["products"]] == [10, 40]


def test_ranked_listing_follows_ranking_order(wire):
    client, transport = wire(category_payload(["30", "10", "20"], total=57, result_id="res-9"))
    client.cookies.set("2c.cId", "visitor-1")
    r = client.get("/category/3", params={"product_list_order": "nosto-personalized", "product_list_limit": "3"})

    assert r.status_code == 200
    body = r.json()
    assert [p["entity_id"] for p in body["products"]] == [30, 10, 20]
    assert body["total_count"] == 57
    assert body["debug"] == {"active_filters": 0, "outcome": "ranked", "result_id": "res-9"}
    assert r.headers["Server-Timing"].startswith("cmp_graphql_query;dur=")

    variables = transport.calls[0]["variables"]
    assert variables["customerId"] == "visitor-1"
    assert variables["category"] == "Electronics/Phones"
    assert variables["limit"] == 3


def test_visitor_without_cookie_gets_a_new_session(wire):
    client, transport = wire({"newSession": "fresh-1"}, category_payload(["20"]))
    r = client.get("/category/3", params={"product_list_order": "nosto-personalized"})
    assert r.json()["debug"]["outcome"] == "ranked"
    assert transport.calls[1]["variables"]["customerId"] == "fresh-1"


def test_ranking_failure_renders_native_listing(wire):
    client, _ = wire(requests.ConnectionError("ranking down"))
    client.cookies.set("2c.cId", "visitor-1")
    r = client.get("/category/3", params={"product_list_order": "nosto-personalized"})

    assert r.status_code == 200
    body = r.json()
    assert [p["entity_id"] for p in body["products"]] == [10, 20, 30, 40]
    assert body["debug"]["outcome"] == "native"
    assert body["debug"]["reason"] == "ranking down"


@pytest.mark.parametrize("path, params", [("/category/999", {}), ("/category/3", {"store": "outlet"})])
def test_unknown_category_or_store_is_not_found(wire, path, params):
    client, _ = wire()
    assert client.get(path, params=params).status_code == 404


@pytest.mark.parametrize("limit", ["9" * 5000, "251", "0", "²", "ten"])
def test_unusable_page_size_renders_default_page(wire, limit):
    client, _ = wire()
    r = client.get("/category/3", params={"product_list_limit": limit})
    assert r.status_code == 200
    assert r.json()["page_size"] == 12
    assert [p["entity_id"] for p in r.json()["products"]] == [10, 20, 30, 40]


def test_far_page_renders_empty_listing(wire):
    client, _ = wire()
    r = client.get("/category/3", params={"p": str(10 ** 15)})
    assert r.status_code == 200
    assert r.json()["products"] == []
    assert r.json()["total_count"] == 4
