from __future__ import annotations

from dataclasses import dataclass

from mpos.domain.models import CartLine, Product, ReturnRecord, Sale
from mpos.repositories import codecs, keys
from mpos.repositories.json_repo import JsonCollectionRepository, JsonDocumentRepository, ReadResult
from mpos.repositories.kv_store import KeyValueStore, SqliteKeyValueStore
from mpos.repositories.unit_of_work import CommitOutcome, StoreUnitOfWork


@dataclass(frozen=True)
class Repositories:
    store: KeyValueStore
    products: JsonCollectionRepository[Product]
    cart: JsonCollectionRepository[CartLine]
    sales: JsonCollectionRepository[Sale]
    returns: JsonCollectionRepository[ReturnRecord]
    app_state: JsonDocumentRepository
    email_config: JsonDocumentRepository
    backup: JsonDocumentRepository

    def unit_of_work(self) -> StoreUnitOfWork:
        return StoreUnitOfWork(self.store)


def build_repositories(store: KeyValueStore) -> Repositories:
    return Repositories(
        store=store,
        products=JsonCollectionRepository(store, keys.PRODUCTS_KEY, codecs.product_to_dict, codecs.product_from_dict),
        cart=JsonCollectionRepository(store, keys.CART_KEY, codecs.cart_line_to_dict, codecs.cart_line_from_dict),
        sales=JsonCollectionRepository(store, keys.SALES_KEY, codecs.sale_to_dict, codecs.sale_from_dict),
        returns=JsonCollectionRepository(store, keys.RETURNS_KEY, codecs.return_to_dict, codecs.return_from_dict),
        app_state=JsonDocumentRepository(store, keys.APP_STATE_KEY),
        email_config=JsonDocumentRepository(store, keys.EMAIL_CONFIG_KEY),
        backup=JsonDocumentRepository(store, keys.BACKUP_KEY),
    )


__all__ = [
    "CommitOutcome",
    "KeyValueStore",
    "ReadResult",
    "Repositories",
    "SqliteKeyValueStore",
    "StoreUnitOfWork",
    "build_repositories",
]
