from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Union

from .pages import HOME_TITLE, NOT_FOUND_MARKDOWN, NOT_FOUND_TITLE, PageKind, PageTemplate, build_previews
from .render import MarkdownRenderer, RenderError
from .store import ContentStore

logger = logging.getLogger(__name__)


class ActorUnavailable(RuntimeError):
    """The render actor is not running, so nothing can be rendered."""


@dataclass
class RenderPost:
    contents: str
    title: str


@dataclass
class RenderHome:
    pass


@dataclass
class RenderNotFound:
    pass


RenderRequest = Union[RenderPost, RenderHome, RenderNotFound]


class RenderActor:
    """Serializes every page render through one queue.

    The page template and the markdown renderer are only touched by this
    actor, one request at a time, on its own render thread. ``submit`` is the
    only way in.
    """

    def __init__(self, renderer: MarkdownRenderer, template: PageTemplate, store: ContentStore):
        self._renderer = renderer
        self._template = template
        self._store = store
        self._queue: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self.failure: Optional[BaseException] = None

    @property
    def available(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._task is not None:
            raise RuntimeError("Render actor already started")
        self._queue = asyncio.Queue(maxsize=1)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="render")
        self._task = asyncio.get_running_loop().create_task(self._run(), name="render-actor")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        if self._executor is not None:
            self._executor.shutdown(wait=False)

    async def submit(self, request: RenderRequest) -> str:
        if not self.available:
            raise ActorUnavailable(self._unavailable_reason())
        reply = asyncio.get_running_loop().create_future()
        put = asyncio.ensure_future(self._queue.put((request, reply)))
        try:
            await asyncio.wait({put, self._task}, return_when=asyncio.FIRST_COMPLETED)
            if not put.done():
                put.cancel()
                raise ActorUnavailable(self._unavailable_reason())
            await asyncio.wait({reply, self._task}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            # A cancelled caller must not leave its request behind in the queue.
            put.cancel()
            reply.cancel()
            raise
        if not reply.done():
            reply.cancel()
            raise ActorUnavailable(self._unavailable_reason())
        return reply.result()

    def _unavailable_reason(self) -> str:
        if self.failure is not None:
            return f"Render actor failed: {self.failure}"
        if self._task is None:
            return "Render actor not started"
        return "Render actor stopped"

    async def _run(self) -> None:
        while True:
            request, reply = await self._queue.get()
            if reply.done():
                continue
            try:
                page = await self._handle(request)
            except RenderError as exc:
                logger.warning("Render request %s failed: %s", type(request).__name__, exc)
                if not reply.done():
                    reply.set_exception(exc)
                continue
            except Exception as exc:
                self.failure = exc
                logger.critical("Render actor failed, rendering is unavailable", exc_info=exc)
                if not reply.done():
                    reply.set_exception(ActorUnavailable(f"Render actor failed: {exc}"))
                return
            if not reply.done():
                reply.set_result(page)

    async def _handle(self, request: RenderRequest) -> str:
        if isinstance(request, RenderPost):
            return await self._call(self._render_post, request.contents, request.title)
        if isinstance(request, RenderHome):
            previews = build_previews(await self._store.snapshot())
            context = {"title": HOME_TITLE, "posts": previews, "is_root": True}
            return await self._call(self._template.render_page, PageKind.HOME, context)
        if isinstance(request, RenderNotFound):
            return await self._call(self._render_post, NOT_FOUND_MARKDOWN, NOT_FOUND_TITLE, PageKind.NOT_FOUND)
        raise RenderError(f"Unknown render request: {request!r}")

    async def _call(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, func, *args)

    def _render_post(self, contents: str, title: str, kind: PageKind = PageKind.POST) -> str:
        body_html = self._renderer.render(contents)
        return self._template.render_page(kind, {"title": title, "body_html": body_html, "is_root": False})
