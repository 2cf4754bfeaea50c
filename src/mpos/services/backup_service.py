from __future__ import annotations

import logging
from typing import Any, Optional

from mpos.domain.errors import PersistenceError
from mpos.repositories import Repositories, codecs
from mpos.services.common import Clock, iso, local_now
from mpos.services.settings_service import SettingsService

log = logging.getLogger(__name__)

BACKUP_VERSION = "1.0.0"


class BackupService:
    """Snapshots of the persisted collections, kept in the store itself.

    Writing snapshots to files or sharing them is left to the caller.
    """

    def __init__(self, repos: Repositories, settings: SettingsService, clock: Clock = local_now):
        self.repos = repos
        self.settings = settings
        self.clock = clock

    async def create_backup(self) -> Optional[dict]:
        products = await self.repos.products.load_or_default()
        sales = await self.repos.sales.load_or_default()
        returns = await self.repos.returns.load_or_default()
        backup = {
            "products": [codecs.product_to_dict(p) for p in products],
            "sales": [codecs.sale_to_dict(s) for s in sales],
            "returns": [codecs.return_to_dict(r) for r in returns],
            "appState": await self.settings.get_app_state(),
            "emailConfig": codecs.email_config_to_dict(await self.settings.get_email_config()),
            "backupDate": iso(self.clock()),
            "version": BACKUP_VERSION,
        }
        try:
            await self.repos.backup.save(backup)
        except PersistenceError as e:
            log.error("backup_failed error=%s", e)
            return None
        log.info("backup_created products=%s sales=%s returns=%s", len(products), len(sales), len(returns))
        return backup

    async def latest_backup(self) -> Optional[dict]:
        res = await self.repos.backup.load()
        if not res.ok:
            log.error("backup_read_failed error=%s", res.error)
            return None
        return res.value

    async def restore_from_backup(self, payload: Any) -> bool:
        if not isinstance(payload, dict):
            log.warning("backup_restore_rejected reason=not_an_object")
            return False
        try:
            products = [codecs.product_from_dict(d) for d in payload.get("products") or []]
            sales = [codecs.sale_from_dict(d) for d in payload.get("sales") or []]
            returns = [codecs.return_from_dict(d) for d in payload.get("returns") or []]
            email_cfg = payload.get("emailConfig")
            if email_cfg is not None:
                email_cfg = codecs.email_config_from_dict(email_cfg)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            log.warning("backup_restore_rejected reason=%s", e)
            return False

        try:
            if isinstance(payload.get("products"), list):
                await self.repos.products.save_all(products)
            if isinstance(payload.get("sales"), list):
                await self.repos.sales.save_all(sales)
            if isinstance(payload.get("returns"), list):
                await self.repos.returns.save_all(returns)
            if email_cfg is not None:
                await self.repos.email_config.save(codecs.email_config_to_dict(email_cfg))
            await self.repos.cart.remove()
        except PersistenceError as e:
            log.error("backup_restore_failed error=%s", e)
            return False

        await self.settings.save_app_state(
            hasProducts=bool(products),
            productsCount=len(products),
            hasCartItems=False,
            cartItemsCount=0,
        )
        log.warning("backup_restored products=%s sales=%s returns=%s", len(products), len(sales), len(returns))
        return True
