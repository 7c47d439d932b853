"""Category naming: turn a category id into the path string sent for ranking."""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Union

from sqlalchemy.orm import Session, sessionmaker

from ..errors import CategoryNotFoundError
from ..schemas import Store
from .catalog_db import Category

logger = logging.getLogger(__name__)

CategoryId = Union[int, str]


class CategoryNamer(Protocol):
    def get_category(self, category_id: Optional[CategoryId], store: Store) -> Optional[str]:
        ...


class DefaultCategoryService:
    """Builds ``"Electronics/Phones"`` style paths below the store's root category.

    The root itself has no name of its own in the path, and categories that
    live under another store's root resolve to ``None``. Unknown ids raise
    :class:`CategoryNotFoundError`.
    """

    separator = "/"

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get_category(self, category_id: Optional[CategoryId], store: Store) -> Optional[str]:
        if category_id is None or category_id == "":
            return None
        try:
            key = int(category_id)
        except (TypeError, ValueError) as exc:
            raise CategoryNotFoundError(category_id) from exc

        with self._session_factory() as session:
            names = self._path_names(session, key)

        root_id, names = names[0], names[1:]
        if root_id != store.root_category_id:
            logger.debug("Category %s is not part of store %s", category_id, store.code)
            return None
        if not names:
            return None
        return self.separator.join(names)

    def _path_names(self, session: Session, category_id: int) -> List:
        """Return ``[root_id, name, name, ...]`` walking up from ``category_id``."""
        category = session.get(Category, category_id)
        if category is None:
            raise CategoryNotFoundError(category_id)

        names: List[str] = []
        seen = set()
        while category.parent_id is not None and category.id not in seen:
            seen.add(category.id)
            names.append(category.name)
            parent = session.get(Category, category.parent_id)
            if parent is None:
                raise CategoryNotFoundError(category.parent_id)
            category = parent
        names.reverse()
        return [category.id, *names]
