from __future__ import annotations

import asyncio
import logging
from glob import escape as glob_escape
from pathlib import Path
from typing import Optional

from .actor import RenderActor
from .bootstrap import bootstrap
from .config import Settings
from .content import InvalidUpload, is_markdown_path, markdown_file_name
from .pages import PageTemplate
from .render import MarkdownRenderer
from .store import ContentStore, Document
from .watcher import PostsWatcher

logger = logging.getLogger(__name__)


class Site:
    """Owns the store, the render actor and the watcher for one posts directory.

    This is what HTTP handlers talk to: reads go straight to the store, and
    the two writes (upload and delete) go through the same paths the watcher
    uses.
    """

    def __init__(
        self,
        settings: Settings,
        renderer: Optional[MarkdownRenderer] = None,
        template: Optional[PageTemplate] = None,
        observer=None,
    ):
        self.settings = settings
        self.posts_dir = Path(settings.posts_dir)
        self.store = ContentStore()
        self._renderer = renderer
        self._template = template
        self._observer = observer
        self.actor: Optional[RenderActor] = None
        self.watcher: Optional[PostsWatcher] = None

    async def start(self) -> None:
        renderer = self._renderer or MarkdownRenderer.from_themes(Path(self.settings.themes_dir))
        template = self._template or PageTemplate.load()
        self.actor = RenderActor(renderer, template, self.store)
        self.actor.start()
        try:
            await bootstrap(self.posts_dir, self.store, self.actor)
        except BaseException:
            await self.actor.stop()
            raise
        self.watcher = PostsWatcher(self.posts_dir, self.store, self.actor, observer=self._observer)
        if self.settings.watch:
            await self.watcher.start()

    async def stop(self) -> None:
        if self.watcher is not None:
            await self.watcher.stop()
        if self.actor is not None:
            await self.actor.stop()

    async def get_document(self, post_id: str) -> Optional[Document]:
        return await self.store.get(post_id)

    async def get_home_html(self) -> str:
        return await self.store.home()

    async def get_about_html(self) -> str:
        return await self.store.about()

    async def get_not_found_html(self) -> str:
        return await self.store.not_found()

    async def delete_document(self, post_id: str) -> bool:
        if await self.store.get(post_id) is None:
            return False
        for path in await asyncio.to_thread(self._post_paths, post_id):
            await asyncio.to_thread(path.unlink, missing_ok=True)
        return await self.watcher.remove_post(post_id)

    def _post_paths(self, post_id: str) -> list[Path]:
        return [
            path
            for path in self.posts_dir.glob(f"{glob_escape(post_id)}.*")
            if path.stem == post_id and is_markdown_path(path)
        ]

    async def save_upload(self, filename: str, data: bytes) -> Path:
        name = markdown_file_name(filename or "")
        if name is None:
            raise InvalidUpload(f"Invalid markdown file: {filename!r}")
        if not data:
            raise InvalidUpload(f"Empty file: {name!r}")
        path = self.posts_dir / name
        await asyncio.to_thread(path.write_bytes, data)
        logger.info("Saved upload %s", path)
        return path
