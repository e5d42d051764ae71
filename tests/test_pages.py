"""Tests for the page template and home listing previews."""

import datetime as dt

import pytest

from livesite.pages import PageKind, PageTemplate, TemplateError, build_previews
from livesite.store import Document


def make_document(post_id, created_at=None, description=""):
    return Document(
        id=post_id,
        encoded_id=post_id,
        created_at=created_at,
        rendered_body=f"<p>{post_id}</p>",
        description=description,
    )


def test_template_requires_title_and_content():
    with pytest.raises(TemplateError, match="content"):
        PageTemplate("<html><title>{{title}}</title></html>")


def test_missing_template_file_is_fatal(tmp_path):
    with pytest.raises(TemplateError):
        PageTemplate.load(tmp_path / "missing.html")


def test_post_page_wraps_body(template):
    page = template.render_page(PageKind.POST, {"title": "a<b", "body_html": "<p>body</p>", "is_root": False})
    assert "<title>a&lt;b</title>" in page
    assert "<p>body</p>" in page
    assert "Back to home" in page


def test_home_page_lists_previews(template):
    previews = build_previews(
        [("hello", make_document("hello", description="First <post>")), ("about", make_document("about"))]
    )
    page = template.render_page(PageKind.HOME, {"title": "Home", "posts": previews, "is_root": True})
    assert "<title>Home</title>" in page
    assert 'href="/posts/hello"' in page
    assert "First &lt;post&gt;" in page
    assert "/posts/about" not in page
    assert "Back to home" not in page


def test_empty_home_page(template):
    page = template.render_page(PageKind.HOME, {"title": "Home", "posts": [], "is_root": True})
    assert "No posts yet." in page


def test_content_placeholders_in_titles_are_not_expanded(template):
    page = template.render_page(PageKind.POST, {"title": "{{content}}", "body_html": "<p>x</p>", "is_root": False})
    assert "<title>{{content}}</title>" in page


def test_previews_without_dates_say_so():
    previews = build_previews([("undated", make_document("undated"))])
    assert previews == [{"date": "No date", "description": "", "encoded_id": "undated", "id": "undated"}]


def test_previews_sort_by_formatted_date_string():
    # "Fri, ..." sorts before "Mon, ..." even though Monday came first.
    monday = dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc)
    friday = dt.datetime(2024, 1, 5, tzinfo=dt.timezone.utc)
    previews = build_previews([("first", make_document("first", monday)), ("second", make_document("second", friday))])
    assert [p["id"] for p in previews] == ["second", "first"]
    assert previews[1]["date"] == "Mon, 01 Jan 2024 00:00:00 +0000"
