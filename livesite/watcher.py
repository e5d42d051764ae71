from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .actor import ActorUnavailable, RenderActor, RenderHome, RenderPost
from .content import ABOUT_ID, describe_path, file_timestamp, is_markdown_path, summarize
from .render import RenderError
from .store import ContentStore, Document

logger = logging.getLogger(__name__)

RELAY_SIZE = 1


class RelayHandler(FileSystemEventHandler):
    """Hands notifier-thread events to the event loop.

    Runs on the observer thread and blocks it while the relay is full, so no
    event is dropped.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, relay: asyncio.Queue):
        super().__init__()
        self.loop = loop
        self.relay = relay

    def on_any_event(self, event: FileSystemEvent) -> None:
        try:
            future = asyncio.run_coroutine_threadsafe(self.relay.put(event), self.loop)
        except RuntimeError:
            logger.debug("Event loop closed, dropping %s", event)
            return
        future.result()


class PostsWatcher:
    """Keeps the content store in step with create/delete events in the posts directory."""

    def __init__(
        self,
        posts_dir: Path,
        store: ContentStore,
        actor: RenderActor,
        observer=None,
        relay_size: int = RELAY_SIZE,
    ):
        self.posts_dir = Path(posts_dir)
        self.store = store
        self.actor = actor
        self.observer = observer
        self.relay_size = relay_size
        self.handler: Optional[RelayHandler] = None
        self._relay: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self._task is not None:
            raise RuntimeError("Watcher already started")
        loop = asyncio.get_running_loop()
        self._relay = asyncio.Queue(maxsize=self.relay_size)
        self.handler = RelayHandler(loop, self._relay)
        if self.observer is None:
            self.observer = Observer()
        self.observer.schedule(self.handler, str(self.posts_dir), recursive=False)
        self.observer.start()
        self._task = loop.create_task(self._run(), name="posts-watcher")
        logger.info("Watching %s for post changes", self.posts_dir)

    async def stop(self) -> None:
        if self._task is None:
            return
        # The observer thread may be blocked on the relay, so keep draining
        # while it shuts down.
        self.observer.stop()
        await asyncio.to_thread(self.observer.join)
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        logger.info("Stopped watching %s", self.posts_dir)

    async def join(self) -> None:
        """Wait until every relayed event has been processed."""
        if self._relay is not None:
            await self._relay.join()

    async def _run(self) -> None:
        while True:
            event = await self._relay.get()
            try:
                await self.handle_event(event)
            finally:
                self._relay.task_done()

    async def handle_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in (EVENT_TYPE_CREATED, EVENT_TYPE_DELETED):
            return
        path = Path(os.fsdecode(event.src_path))
        if not is_markdown_path(path):
            logger.debug("Ignoring non-markdown file %s", path)
            return
        try:
            if event.event_type == EVENT_TYPE_CREATED:
                await self.add_post(path)
            else:
                post_id, _ = describe_path(path)
                await self.remove_post(post_id)
        except ActorUnavailable as exc:
            logger.error("Dropped %s event for %s, rendering pipeline is down: %s", event.event_type, path, exc)
        except (OSError, UnicodeDecodeError, RenderError, ValueError) as exc:
            logger.warning("Dropped %s event for %s: %s", event.event_type, path, exc)
        except Exception:
            logger.exception("Unexpected error while handling %s event for %s", event.event_type, path)

    async def add_post(self, path: Path) -> Optional[Document]:
        post_id, encoded_id = describe_path(path)
        contents = await asyncio.to_thread(path.read_text, encoding="utf-8", errors="replace")
        created_at = await asyncio.to_thread(file_timestamp, path)
        rendered = await self.actor.submit(RenderPost(contents=contents, title=post_id))
        if post_id == ABOUT_ID:
            await self.store.set_about(rendered)
            logger.info("Rendered about page")
            return None
        document = Document(
            id=post_id,
            encoded_id=encoded_id,
            created_at=created_at,
            rendered_body=rendered,
            description=summarize(contents),
        )
        await self.store.insert(post_id, document)
        logger.info("Rendered post %s", post_id)
        await self.refresh_home()
        return document

    async def remove_post(self, post_id: str) -> bool:
        removed = await self.store.remove(post_id)
        if removed:
            logger.info("Removed post %s", post_id)
        else:
            logger.debug("Post %s was not cached", post_id)
        await self.refresh_home()
        return removed

    async def refresh_home(self) -> None:
        await self.store.set_home(await self.actor.submit(RenderHome()))
