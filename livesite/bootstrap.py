from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from .actor import RenderActor, RenderHome, RenderNotFound, RenderPost
from .content import ABOUT_ID, describe_path, file_timestamp, is_markdown_path, summarize
from .store import ContentStore, Document

logger = logging.getLogger(__name__)


class BootstrapError(RuntimeError):
    """The posts directory could not be loaded at startup."""


def _scan(posts_dir: Path) -> list[Path]:
    posts_dir.mkdir(parents=True, exist_ok=True)
    return [path for path in posts_dir.iterdir() if path.is_file()]


async def bootstrap(posts_dir: Path, store: ContentStore, actor: RenderActor) -> int:
    """Fill the store from ``posts_dir`` and render the singleton pages.

    Returns the number of posts loaded. Must run before the watcher starts.
    """
    posts_dir = Path(posts_dir)
    try:
        entries = await asyncio.to_thread(_scan, posts_dir)
    except OSError as exc:
        raise BootstrapError(f"Cannot read posts directory {posts_dir}: {exc}") from exc

    about_html = ""
    loaded = 0
    for path in entries:
        if not is_markdown_path(path):
            logger.debug("Skipping non-markdown file %s", path)
            continue
        try:
            post_id, encoded_id = describe_path(path)
        except ValueError as exc:
            logger.warning("Skipping %s: %s", path, exc)
            continue
        try:
            contents = await asyncio.to_thread(path.read_text, encoding="utf-8", errors="replace")
        except OSError as exc:
            raise BootstrapError(f"Cannot read post {path}: {exc}") from exc
        rendered = await actor.submit(RenderPost(contents=contents, title=post_id))
        if post_id == ABOUT_ID:
            about_html = rendered
            continue
        document = Document(
            id=post_id,
            encoded_id=encoded_id,
            created_at=await asyncio.to_thread(file_timestamp, path),
            rendered_body=rendered,
            description=summarize(contents),
        )
        await store.insert(post_id, document)
        loaded += 1

    await store.set_about(about_html)
    await store.set_not_found(await actor.submit(RenderNotFound()))
    await store.set_home(await actor.submit(RenderHome()))
    logger.info("Loaded %d post(s) from %s", loaded, posts_dir)
    return loaded
