from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Callable, Generic, Iterable, Optional, TypeVar

from mpos.domain.errors import PersistenceError
from mpos.repositories.kv_store import KeyValueStore

log = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ReadResult(Generic[T]):
    value: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap_or(self, default: T) -> T:
        if self.error is not None or self.value is None:
            return default
        return self.value


class JsonCollectionRepository(Generic[T]):
    """One entity collection stored as a single JSON list under one key.

    Reads load the whole list, writes replace it wholesale.
    """

    def __init__(
        self,
        store: KeyValueStore,
        key: str,
        encode: Callable[[T], dict],
        decode: Callable[[dict], T],
    ):
        self.store = store
        self.key = key
        self.encode = encode
        self.decode = decode

    async def load(self) -> ReadResult[list[T]]:
        try:
            raw = await self.store.get_item(self.key)
        except PersistenceError as e:
            return ReadResult(error=e)
        if raw is None:
            return ReadResult(value=[])
        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError(f"expected a list under '{self.key}'")
            return ReadResult(value=[self.decode(d) for d in data])
        except (ValueError, KeyError, TypeError) as e:
            return ReadResult(error=e)

    async def load_or_default(self) -> list[T]:
        res = await self.load()
        if not res.ok:
            log.error("read_failed key=%s error=%s", self.key, res.error)
        return res.unwrap_or([])

    def dumps(self, items: Iterable[T]) -> str:
        return json.dumps([self.encode(it) for it in items], ensure_ascii=False)

    async def save_all(self, items: Iterable[T]) -> None:
        await self.store.set_item(self.key, self.dumps(items))

    async def remove(self) -> None:
        await self.store.remove_item(self.key)


class JsonDocumentRepository:
    """A single JSON object under one key (settings-style data)."""

    def __init__(self, store: KeyValueStore, key: str):
        self.store = store
        self.key = key

    async def load(self) -> ReadResult[dict]:
        try:
            raw = await self.store.get_item(self.key)
        except PersistenceError as e:
            return ReadResult(error=e)
        if raw is None:
            return ReadResult(value=None)
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError(f"expected an object under '{self.key}'")
            return ReadResult(value=data)
        except ValueError as e:
            return ReadResult(error=e)

    async def load_or_default(self, default: dict | None = None) -> dict:
        res = await self.load()
        if not res.ok:
            log.error("read_failed key=%s error=%s", self.key, res.error)
        return dict(res.unwrap_or(default or {}))

    def dumps(self, doc: dict) -> str:
        return json.dumps(doc, ensure_ascii=False)

    async def save(self, doc: dict) -> None:
        await self.store.set_item(self.key, self.dumps(doc))
