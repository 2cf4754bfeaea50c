from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from mpos.repositories import Repositories, SqliteKeyValueStore, build_repositories
from mpos.repositories.kv_store import KeyValueStore
from mpos.services.backup_service import BackupService
from mpos.services.cart_service import CartService
from mpos.services.catalog_service import CatalogService
from mpos.services.common import Clock, IdFactory, local_now, new_id
from mpos.services.operations_service import OperationsService
from mpos.services.purchase_service import PurchaseService, ReceiptHook
from mpos.services.reporting_service import ReportingService
from mpos.services.return_service import ReturnService
from mpos.services.sales_service import SalesLedger
from mpos.services.settings_service import SettingsService


@dataclass(frozen=True)
class AppContainer:
    repos: Repositories
    settings: SettingsService
    catalog: CatalogService
    cart: CartService
    sales: SalesLedger
    purchases: PurchaseService
    returns: ReturnService
    reporting: ReportingService
    backup: BackupService
    operations: OperationsService


def build_services(
    store: KeyValueStore,
    clock: Clock = local_now,
    id_factory: IdFactory = new_id,
    receipt_hook: Optional[ReceiptHook] = None,
) -> AppContainer:
    repos = build_repositories(store)

    settings = SettingsService(repos.app_state, repos.email_config, clock=clock)
    catalog = CatalogService(repos.products, settings, clock=clock, id_factory=id_factory)
    cart = CartService(repos.cart, catalog, settings)
    sales = SalesLedger(repos.sales)
    purchases = PurchaseService(
        repos.products,
        repos.cart,
        sales,
        settings,
        uow_factory=repos.unit_of_work,
        clock=clock,
        id_factory=id_factory,
        receipt_hook=receipt_hook,
    )
    returns = ReturnService(repos.products, repos.returns, sales, uow_factory=repos.unit_of_work, clock=clock, id_factory=id_factory)
    reporting = ReportingService(sales)
    backup = BackupService(repos, settings, clock=clock)
    operations = OperationsService(repos, settings, clock=clock, id_factory=id_factory)

    return AppContainer(
        repos=repos,
        settings=settings,
        catalog=catalog,
        cart=cart,
        sales=sales,
        purchases=purchases,
        returns=returns,
        reporting=reporting,
        backup=backup,
        operations=operations,
    )


def build_container(store_path: Path | str, receipt_hook: Optional[ReceiptHook] = None) -> AppContainer:
    store = SqliteKeyValueStore(store_path)
    store.init_db()
    return build_services(store, receipt_hook=receipt_hook)
