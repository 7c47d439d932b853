"""Process-wide collaborators, built once and shared read-only by requests."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import sessionmaker

from .config import Settings, load_settings
from .core.accounts import AccountRegistry
from .core.catalog_db import create_catalog_engine, create_session_factory, seed_catalog
from .core.categories import DefaultCategoryService
from .core.category_service import StateAwareCategoryService
from .core.events import CmpResultsFetched, EventBus, log_fetched_results
from .core.facets import BuildWebFacetService
from .core.navigation import LayerState
from .core.pipeline import MerchandisingPipeline
from .core.ranking_client import GraphQLClient, RemoteRankingClient, VisitSessionService
from .core.request_params import RequestParamsService


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker:
    settings = load_settings()
    factory = create_session_factory(create_catalog_engine(settings.database_url))
    if settings.catalog_path.exists():
        with factory() as session:
            seed_catalog(session, settings.catalog_path)
    return factory


@lru_cache(maxsize=1)
def get_account_registry() -> AccountRegistry:
    return AccountRegistry(load_settings())


@lru_cache(maxsize=1)
def get_event_bus() -> EventBus:
    bus = EventBus()
    bus.subscribe(CmpResultsFetched, log_fetched_results)
    return bus


def get_layer_state(session_factory: sessionmaker = Depends(get_session_factory)) -> LayerState:
    return LayerState(session_factory)


def build_pipeline(
    settings: Settings,
    session_factory: sessionmaker,
    accounts: AccountRegistry,
    event_bus: EventBus,
    transport: GraphQLClient,
) -> MerchandisingPipeline:
    category_namer = DefaultCategoryService(session_factory)
    request_params = RequestParamsService(
        settings,
        accounts,
        category_namer,
        VisitSessionService(transport),
    )
    category_service = StateAwareCategoryService(
        request_params,
        RemoteRankingClient(transport),
        event_bus,
    )
    return MerchandisingPipeline(
        BuildWebFacetService(category_namer),
        category_service,
        settings.personalized_sort_key,
    )


@lru_cache(maxsize=1)
def get_pipeline() -> MerchandisingPipeline:
    settings = load_settings()
    return build_pipeline(
        settings,
        get_session_factory(),
        get_account_registry(),
        get_event_bus(),
        GraphQLClient(settings.graphql_url, timeout=settings.request_timeout),
    )
