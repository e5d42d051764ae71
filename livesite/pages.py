from __future__ import annotations

import datetime as dt
import enum
import html
import re
from pathlib import Path
from typing import Iterable, Optional

from .content import ABOUT_ID
from .utils import format_date

PLACEHOLDER_RE = re.compile(r"\{\{(\w+)\}\}")
TEMPLATE_PATH = Path(__file__).parent / "templates" / "page.html"
REQUIRED_PLACEHOLDERS = ("title", "content")
PUBLIC_ROOT = "/public"
HOME_TITLE = "Home"
NOT_FOUND_TITLE = "404"
NOT_FOUND_MARKDOWN = "# 404\nPage not found."


class TemplateError(RuntimeError):
    """The page template is missing or unusable."""


class PageKind(enum.Enum):
    POST = "post"
    HOME = "home"
    NOT_FOUND = "not_found"


def render_template(template: str, **context: str) -> str:
    # One pass over the template, so substituted values are never re-expanded.
    return PLACEHOLDER_RE.sub(lambda m: context.get(m.group(1), m.group(0)), template)


def build_previews(entries: Iterable[tuple[str, object]]) -> list[dict]:
    """Preview records for the home listing.

    Sorted by the formatted date string, so the order is lexicographic and
    not chronological.
    """
    previews = []
    for post_id, document in entries:
        if post_id == ABOUT_ID:
            continue
        created_at: Optional[dt.datetime] = getattr(document, "created_at", None)
        previews.append(
            {
                "date": format_date(created_at),
                "description": getattr(document, "description", ""),
                "encoded_id": getattr(document, "encoded_id", post_id),
                "id": post_id,
            }
        )
    previews.sort(key=lambda p: p["date"])
    return previews


def build_post_cards(posts: list[dict]) -> str:
    if not posts:
        return '<p class="post-empty">No posts yet.</p>'
    cards = []
    for idx, post in enumerate(posts):
        delay = min(idx * 0.05, 0.3)
        url = f"/posts/{post['encoded_id']}"
        title = html.escape(post["id"])
        description = html.escape(post["description"])
        cards.append(
            f'<article class="post-card" style="animation-delay: {delay:.2f}s">'
            f'<div class="post-meta"><span class="post-date">{html.escape(post["date"])}</span></div>'
            f'<h2 class="post-title"><a href="{url}">{title}</a></h2>'
            f'<p class="post-summary">{description}</p>'
            f'<a class="post-more" href="{url}">Read more</a>'
            "</article>"
        )
    return "\n".join(cards)


class PageTemplate:
    """The single compiled page layout every page is rendered through."""

    def __init__(self, source: str):
        missing = [key for key in REQUIRED_PLACEHOLDERS if f"{{{{{key}}}}}" not in source]
        if missing:
            raise TemplateError(f"Page template lacks placeholders: {', '.join(missing)}")
        self.source = source

    @classmethod
    def load(cls, path: Path = TEMPLATE_PATH) -> "PageTemplate":
        try:
            source = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise TemplateError(f"Cannot read page template {path}: {exc}") from exc
        return cls(source)

    def render_page(self, kind: PageKind, context: dict) -> str:
        if kind is PageKind.HOME:
            content = (
                '<div class="section-head">'
                "<h2>Latest posts</h2>"
                "</div>"
                f'<div class="post-grid">{build_post_cards(context["posts"])}</div>'
            )
        elif kind in (PageKind.POST, PageKind.NOT_FOUND):
            content = f'<article class="post"><div class="post-body">{context["body_html"]}</div></article>'
        else:
            raise TemplateError(f"Unknown page kind: {kind!r}")
        is_root = bool(context.get("is_root", False))
        nav = "" if is_root else '<a class="back-link" href="/">Back to home</a>'
        return render_template(
            self.source,
            title=html.escape(context["title"]),
            public=PUBLIC_ROOT,
            nav=nav,
            body_class="is-root" if is_root else "is-page",
            year=str(dt.datetime.now().year),
            content=content,
        )
