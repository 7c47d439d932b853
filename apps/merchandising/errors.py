"""Exceptions raised while building and executing a merchandising request.

None of these ever reach the shopper: the pipeline turns every one of them into
a fallback to the platform's native listing and logs it.
"""

from __future__ import annotations

from typing import Any, List, Optional


class CmpError(Exception):
    """Base class for category merchandising failures."""


class MissingAccountException(CmpError):
    def __init__(self, store: Any):
        self.store = store
        super().__init__(f"Store {_store_code(store)} has no merchandising account configured")


class MissingTokenException(CmpError):
    def __init__(self, store: Any, token_name: str):
        self.store = store
        self.token_name = token_name
        super().__init__(
            f"Account for store {_store_code(store)} is missing the '{token_name}' token"
        )


class SessionCreationException(CmpError):
    def __init__(self, store: Any, reason: str = ""):
        self.store = store
        message = f"Could not create a new visit session for store {_store_code(store)}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class FacetValueException(CmpError):
    def __init__(self, store: Any, field_name: str, value: Any):
        self.store = store
        self.field_name = field_name
        self.value = value
        super().__init__(
            f"Cannot build facet value for field '{field_name}' in store "
            f"{_store_code(store)}: unsupported value {value!r} ({type(value).__name__})"
        )


class CategoryNotFoundError(CmpError):
    def __init__(self, category_id: Any):
        self.category_id = category_id
        super().__init__(f"Category {category_id!r} does not exist")


class RankingResponseError(CmpError):
    """The ranking service answered, but not with a usable result."""

    def __init__(self, message: str, errors: Optional[List[Any]] = None):
        self.errors = errors or []
        super().__init__(message)


def _store_code(store: Any) -> str:
    return str(getattr(store, "code", store))
