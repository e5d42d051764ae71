from __future__ import annotations

import asyncio
import datetime as dt
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Document:
    id: str
    encoded_id: str
    created_at: Optional[dt.datetime]
    rendered_body: str
    description: str = ""


class ContentStore:
    """Shared cache of rendered posts and the three singleton pages.

    Every operation takes the same lock, so readers see either the state
    before a write or after it. The lock is never handed out: code that
    renders through the actor must not be inside a store call.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._documents: dict[str, Document] = {}
        self._home = ""
        self._about = ""
        self._not_found = ""

    async def insert(self, post_id: str, document: Document) -> None:
        async with self._lock:
            self._documents[post_id] = document

    async def remove(self, post_id: str) -> bool:
        async with self._lock:
            return self._documents.pop(post_id, None) is not None

    async def get(self, post_id: str) -> Optional[Document]:
        async with self._lock:
            return self._documents.get(post_id)

    async def snapshot(self) -> list[tuple[str, Document]]:
        async with self._lock:
            return sorted(self._documents.items(), key=lambda item: item[0])

    async def count(self) -> int:
        async with self._lock:
            return len(self._documents)

    async def set_home(self, html: str) -> None:
        async with self._lock:
            self._home = html

    async def set_about(self, html: str) -> None:
        async with self._lock:
            self._about = html

    async def set_not_found(self, html: str) -> None:
        async with self._lock:
            self._not_found = html

    async def home(self) -> str:
        async with self._lock:
            return self._home

    async def about(self) -> str:
        async with self._lock:
            return self._about

    async def not_found(self) -> str:
        async with self._lock:
            return self._not_found
