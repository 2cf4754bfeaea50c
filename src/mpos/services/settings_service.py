from __future__ import annotations

import logging

from mpos.domain.errors import PersistenceError
from mpos.domain.models import EmailConfig
from mpos.repositories.codecs import email_config_from_dict, email_config_to_dict
from mpos.repositories.contracts import DocumentRepository
from mpos.services.common import Clock, iso, local_now

log = logging.getLogger(__name__)

EMAIL_PROVIDERS = ("mailto", "gmail", "custom")


class SettingsService:
    """App lifecycle flags and email settings."""

    def __init__(self, app_state: DocumentRepository, email_config: DocumentRepository, clock: Clock = local_now):
        self.app_state = app_state
        self.email_config = email_config
        self.clock = clock

    async def get_app_state(self) -> dict:
        return await self.app_state.load_or_default()

    async def save_app_state(self, **changes) -> bool:
        state = await self.get_app_state()
        state.update(changes)
        state["lastSaved"] = iso(self.clock())
        try:
            await self.app_state.save(state)
        except PersistenceError as e:
            log.error("app_state_save_failed error=%s", e)
            return False
        return True

    async def mark_app_started(self) -> bool:
        return await self.save_app_state(appStarted=True, appState="active", lastStartTime=iso(self.clock()))

    async def mark_app_closed(self) -> bool:
        return await self.save_app_state(appStarted=False, appState="closed", lastClosedTime=iso(self.clock()))

    async def get_email_config(self) -> EmailConfig:
        res = await self.email_config.load()
        if not res.ok:
            log.error("email_config_read_failed error=%s", res.error)
            return EmailConfig()
        if res.value is None:
            return EmailConfig()
        return email_config_from_dict(res.value)

    async def save_email_config(self, config: EmailConfig) -> bool:
        if config.email_service_provider not in EMAIL_PROVIDERS:
            log.warning("email_config_rejected provider=%s", config.email_service_provider)
            return False
        try:
            await self.email_config.save(email_config_to_dict(config))
        except PersistenceError as e:
            log.error("email_config_save_failed error=%s", e)
            return False
        log.info("email_config_saved provider=%s notifications=%s", config.email_service_provider, config.enable_email_notifications)
        return True

    async def should_auto_send_receipts(self) -> bool:
        cfg = await self.get_email_config()
        return bool(cfg.enable_email_notifications and cfg.auto_send_receipts and cfg.default_email)
