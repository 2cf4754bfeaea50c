from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from mpos.domain.errors import PersistenceError
from mpos.repositories.kv_store import KeyValueStore

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommitOutcome:
    applied: tuple[str, ...]
    failed_key: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.failed_key is None


class UnitOfWork(Protocol):
    async def __aenter__(self) -> "UnitOfWork": ...
    async def __aexit__(self, exc_type, exc, tb) -> None: ...
    def stage_write(self, key: str, payload: str) -> None: ...
    def stage_remove(self, key: str) -> None: ...
    async def commit(self) -> CommitOutcome: ...


class StoreUnitOfWork:
    """Unit of Work over a key-value store with no multi-key transactions.

    Writes are buffered and applied in staging order when ``commit`` runs.
    Each write is atomic for its key only. The first failing write stops the
    commit; writes that already landed stay (there is no rollback) and are
    reported in the outcome.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store
        self._pending: list[tuple[str, Optional[str]]] = []

    async def __aenter__(self) -> "StoreUnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._pending:
            log.warning("uow_discarded keys=%s", ",".join(self.pending_keys))
        self._pending.clear()

    @property
    def pending_keys(self) -> list[str]:
        return [k for k, _ in self._pending]

    def stage_write(self, key: str, payload: str) -> None:
        self._pending.append((key, payload))

    def stage_remove(self, key: str) -> None:
        self._pending.append((key, None))

    async def commit(self) -> CommitOutcome:
        applied: list[str] = []
        pending, self._pending = self._pending, []
        for key, payload in pending:
            try:
                if payload is None:
                    await self.store.remove_item(key)
                else:
                    await self.store.set_item(key, payload)
            except PersistenceError as e:
                log.error(
                    "uow_commit_failed key=%s applied=%s skipped=%s",
                    key,
                    ",".join(applied) or "-",
                    ",".join(k for k, _ in pending[len(applied) + 1:]) or "-",
                )
                return CommitOutcome(applied=tuple(applied), failed_key=key, error=e)
            applied.append(key)
        return CommitOutcome(applied=tuple(applied))
