"""Rewrite a product listing query to follow an external ranking.

The rewritten query keeps only the ranked products and orders them by their
position in the ranking, best first. A ranking that is empty or holds anything
but plain ids leaves the query exactly as it was.
"""

from __future__ import annotations

import logging
from numbers import Number
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import Select, case

from ..schemas import RankingResult

logger = logging.getLogger(__name__)


def parse_product_ids(result: Optional[RankingResult]) -> List[Any]:
    if result is None:
        return []
    return list(result.product_ids)


def only_scalar_values(values: Sequence[Any]) -> bool:
    return all(
        isinstance(value, (str, int, float)) and not isinstance(value, bool)
        for value in values
    )


def _coerce_ids(product_ids: Sequence[Any], id_column: Any) -> Optional[List[Any]]:
    try:
        python_type = id_column.type.python_type
    except (AttributeError, NotImplementedError):
        return list(product_ids)
    coerced = []
    for product_id in product_ids:
        try:
            value = python_type(product_id)
        except (TypeError, ValueError, OverflowError):
            return None
        if isinstance(value, Number) and not isinstance(product_id, str) and value != product_id:
            # 10.7 must not turn into product 10
            return None
        coerced.append(value)
    return coerced


def apply_ranking(result: Optional[RankingResult], stmt: Select, id_column: Any) -> Select:
    product_ids = parse_product_ids(result)
    if not product_ids or not only_scalar_values(product_ids):
        logger.debug("Got an empty ranking result for category, keeping native order")
        return stmt

    coerced = _coerce_ids(product_ids, id_column)
    if coerced is None:
        logger.debug("Ranked ids %s do not fit column %s, keeping native order", product_ids, id_column)
        return stmt

    positions: Dict[Any, int] = {}
    for product_id in coerced:
        positions.setdefault(product_id, len(positions))

    ordering = case(positions, value=id_column, else_=len(positions))
    ranked = stmt.order_by(None).order_by(ordering.asc()).where(id_column.in_(list(positions)))
    logger.debug("Ranked listing query: %s", ranked)
    return ranked
