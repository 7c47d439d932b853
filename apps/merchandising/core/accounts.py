"""Store and account lookup backed by :class:`~merchandising.config.Settings`."""

from __future__ import annotations

from typing import Dict, Optional

from ..config import Settings
from ..schemas import Account, Store


class AccountRegistry:
    def __init__(self, settings: Settings):
        self._stores: Dict[str, Store] = {}
        self._accounts: Dict[str, Account] = {}
        for entry in settings.stores:
            self._stores[entry.code] = Store(
                code=entry.code,
                store_id=entry.store_id,
                root_category_id=entry.root_category_id,
                max_product_limit=entry.max_product_limit or settings.max_product_limit,
                brand_attribute=entry.brand_attribute or settings.brand_attribute,
            )
            if entry.account is not None:
                self._accounts[entry.code] = Account(
                    name=entry.account.name, tokens=dict(entry.account.tokens)
                )

    def get_store(self, code: str) -> Optional[Store]:
        return self._stores.get(code)

    def find_account(self, store: Store) -> Optional[Account]:
        return self._accounts.get(store.code)
