from __future__ import annotations

from typing import Iterable, Protocol, TypeVar

from mpos.repositories.json_repo import ReadResult

T = TypeVar("T")


class CollectionRepository(Protocol[T]):
    key: str

    async def load(self) -> ReadResult[list[T]]: ...
    async def load_or_default(self) -> list[T]: ...
    def dumps(self, items: Iterable[T]) -> str: ...
    async def save_all(self, items: Iterable[T]) -> None: ...
    async def remove(self) -> None: ...


class DocumentRepository(Protocol):
    key: str

    async def load(self) -> ReadResult[dict]: ...
    async def load_or_default(self, default: dict | None = None) -> dict: ...
    async def save(self, doc: dict) -> None: ...
