"""GraphQL transport to the remote merchandising service.

``RemoteRankingClient.execute`` is the only call the pipeline waits on. It does
not retry; ``requests`` errors and :class:`RankingResponseError` propagate to
the caller untouched.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from ..config import GRAPHQL_CAPABILITY
from ..errors import MissingTokenException, RankingResponseError, SessionCreationException
from ..schemas import Account, MerchandiseRequest, RankingResult, Store

logger = logging.getLogger(__name__)

CATEGORY_MERCHANDISING_QUERY = """
query CategoryMerchandising(
  $customerId: String!,
  $category: String!,
  $skipPages: Int!,
  $limit: Int!,
  $include: InputIncludeParams,
  $exclude: InputFilterParams,
  $preview: Boolean!,
  $batchToken: String
) {
  updateSession(by: %(identifier)s, id: $customerId, params: {
    event: { type: VIEWED_PAGE, target: $category }
  }) {
    pages {
      category(
        category: $category,
        skipPages: $skipPages,
        maxProducts: $limit,
        include: $include,
        exclude: $exclude,
        preview: $preview,
        batchToken: $batchToken
      ) {
        primary { productId }
        batchToken
        totalPrimaryCount
        resultId
      }
    }
  }
}
"""

NEW_SESSION_MUTATION = """
mutation NewSession($referer: String) {
  newSession(referer: $referer)
}
"""


class GraphQLClient:
    def __init__(self, url: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self._session = session or requests.Session()

    def post(self, query: str, variables: Dict[str, Any], token: str) -> Dict[str, Any]:
        """POST a GraphQL document and return its ``data`` member."""
        resp = self._session.post(
            self.url,
            json={"query": query, "variables": variables},
            auth=("", token),
            headers={"Content-Type": "application/json"},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        try:
            body = resp.json()
        except ValueError as exc:
            raise RankingResponseError(f"Response from {self.url} is not JSON") from exc

        if not isinstance(body, dict):
            raise RankingResponseError(f"Unexpected response type {type(body).__name__}")
        errors = body.get("errors")
        if errors:
            raise RankingResponseError("GraphQL request failed", errors=errors)
        data = body.get("data")
        if not isinstance(data, dict):
            raise RankingResponseError("GraphQL response carries no data")
        return data


def _graphql_token(account: Account, store: Any) -> str:
    token = account.token(GRAPHQL_CAPABILITY)
    if token is None:
        raise MissingTokenException(store, GRAPHQL_CAPABILITY)
    return token


class RemoteRankingClient:
    def __init__(self, transport: GraphQLClient):
        self._transport = transport

    def execute(self, request: MerchandiseRequest) -> RankingResult:
        query = CATEGORY_MERCHANDISING_QUERY % {"identifier": request.identifier_type}
        variables = {
            "customerId": request.customer_id,
            "category": request.category or "",
            "skipPages": request.page_number,
            "limit": request.limit,
            "include": request.facets.include_filters.to_graphql(),
            "exclude": request.facets.exclude_filters.to_graphql(),
            "preview": request.preview_mode,
            "batchToken": request.batch_token,
        }
        data = self._transport.post(query, variables, _graphql_token(request.account, request.account.name))
        return parse_category_result(data)


def parse_category_result(data: Dict[str, Any]) -> RankingResult:
    try:
        category = data["updateSession"]["pages"]["category"]
    except (KeyError, TypeError) as exc:
        raise RankingResponseError("Category merchandising result is missing") from exc
    if not isinstance(category, dict):
        raise RankingResponseError("Category merchandising result is missing")

    primary = category.get("primary")
    if not isinstance(primary, list):
        raise RankingResponseError("Category merchandising result has no product list")

    product_ids: List[Any] = []
    for item in primary:
        if isinstance(item, dict) and "productId" in item:
            product_ids.append(item["productId"])
        else:
            # kept as-is so the applier can reject the result as non-scalar
            product_ids.append(item)

    total = category.get("totalPrimaryCount")
    if total is None:
        total = len(product_ids)
    try:
        total = int(total)
    except (TypeError, ValueError, OverflowError) as exc:
        raise RankingResponseError(f"Unexpected totalPrimaryCount {total!r}") from exc
    return RankingResult(
        product_ids=tuple(product_ids),
        total_primary_count=total,
        batch_token=category.get("batchToken"),
        result_id=category.get("resultId"),
    )


class VisitSessionService:
    """Mints a visitor id when the shopper carries no tracking cookie."""

    def __init__(self, transport: GraphQLClient):
        self._transport = transport

    def get_new_session(self, store: Store, account: Account) -> str:
        token = _graphql_token(account, store)
        try:
            data = self._transport.post(NEW_SESSION_MUTATION, {"referer": store.code}, token)
        except (requests.RequestException, RankingResponseError) as exc:
            raise SessionCreationException(store, str(exc)) from exc

        session_id = data.get("newSession")
        if not session_id or not isinstance(session_id, str):
            raise SessionCreationException(store, "service returned no session id")
        logger.debug("Created new visit session for store %s", store.code)
        return session_id
