import json

import pytest

from merchandising.config import settings_from_env
from merchandising.core.accounts import AccountRegistry
from merchandising.core.events import CmpResultsFetched, EventBus
from merchandising.core.server_timing import ServerTiming
from merchandising.schemas import RankingResult


def test_defaults_without_environment():
    settings = settings_from_env({})
    assert settings.personalized_sort_key == "nosto-personalized"
    assert settings.max_product_limit == 250
    assert [s.code for s in settings.stores] == ["default"]
    registry = AccountRegistry(settings)
    assert registry.find_account(registry.get_store("default")) is None


def test_environment_overrides_and_store_defaults():
    stores = [
        {"code": "eu", "store_id": 2, "root_category_id": 1,
         "account": {"name": "eu-shop", "tokens": {"graphql": "t"}}},
        {"code": "us", "store_id": 3, "root_category_id": 1, "max_product_limit": 60, "brand_attribute": "brand"},
    ]
    settings = settings_from_env({
        "MERCH_STORES": json.dumps(stores),
        "MERCH_MAX_PRODUCT_LIMIT": "100",
        "MERCH_REQUEST_TIMEOUT": "2.5",
    })
    registry = AccountRegistry(settings)

    eu = registry.get_store("eu")
    assert eu.max_product_limit == 100
    assert eu.brand_attribute == "manufacturer"
    assert registry.find_account(eu).token("graphql") == "t"

    us = registry.get_store("us")
    assert us.max_product_limit == 60
    assert us.brand_attribute == "brand"
    assert settings.request_timeout == 2.5


@pytest.mark.parametrize(
    "environ",
    [{"MERCH_STORES": "{not json"}, {"MERCH_STORES": "{}"}, {"MERCH_REQUEST_TIMEOUT": "soon"}],
)
def test_bad_settings_raise_value_error(environ):
    with pytest.raises(ValueError):
        settings_from_env(environ)


def test_failing_handler_does_not_stop_others():
    seen = []

    def broken(event):
        raise RuntimeError("nope")

    bus = EventBus()
    bus.subscribe(CmpResultsFetched, broken)
    bus.subscribe(CmpResultsFetched, seen.append)
    event = CmpResultsFetched(result=RankingResult(product_ids=("1",)), limit=12, page_number=0)

    bus.publish(event)
    bus.publish(object())

    assert seen == [event]


def test_server_timing_accumulates_even_on_errors():
    timing = ServerTiming()
    assert timing.instrument(lambda: 42, "query") == 42
    with pytest.raises(ZeroDivisionError):
        timing.instrument(lambda: 1 / 0, "query")
    assert set(timing.timings) == {"query"}
    assert timing.header_value().startswith("query;dur=")
