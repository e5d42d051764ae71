"""HTTP front end: thin handlers over the Site's cached pages."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import HTMLResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from .actor import ActorUnavailable
from .config import Settings
from .content import InvalidUpload
from .site import Site

logger = logging.getLogger(__name__)

GZIP_MIN_SIZE = 500


def create_app(settings: Settings, site: Optional[Site] = None) -> FastAPI:
    """Create the FastAPI app serving one Site.

    The Site is started in the lifespan, so its tasks live on the server's
    event loop.
    """
    site = site or Site(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await site.start()
        app.state.site = site
        yield
        await site.stop()

    app = FastAPI(title="livesite", lifespan=lifespan)
    app.add_middleware(GZipMiddleware, minimum_size=GZIP_MIN_SIZE)

    if settings.public_dir.is_dir():
        app.mount("/public", StaticFiles(directory=str(settings.public_dir)), name="public")

    async def not_found_page() -> HTMLResponse:
        return HTMLResponse(await site.get_not_found_html(), status_code=404)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404 and request.method == "GET":
            return await not_found_page()
        return PlainTextResponse(str(exc.detail), status_code=exc.status_code)

    @app.get("/", response_class=HTMLResponse)
    async def get_root():
        return HTMLResponse(await site.get_home_html())

    @app.get("/about", response_class=HTMLResponse)
    async def get_about():
        about = await site.get_about_html()
        if not about:
            return await not_found_page()
        return HTMLResponse(about)

    @app.get("/posts/{post_id}", response_class=HTMLResponse)
    async def get_post(post_id: str):
        document = await site.get_document(post_id)
        if document is None:
            return await not_found_page()
        return HTMLResponse(document.rendered_body)

    @app.post("/api/post", status_code=201)
    async def upload_post(files: List[UploadFile] = File(...)):
        logger.info("Uploading %d post(s)", len(files))
        saved = []
        for upload in files:
            data = await upload.read()
            try:
                path = await site.save_upload(upload.filename or "", data)
            except InvalidUpload as exc:
                raise HTTPException(status_code=400, detail=str(exc)) from exc
            except OSError as exc:
                raise HTTPException(status_code=500, detail="File creation failed") from exc
            saved.append(path.name)
        return {"saved": saved}

    @app.delete("/api/posts/{post_id}")
    async def delete_post(post_id: str):
        try:
            deleted = await site.delete_document(post_id)
        except ActorUnavailable as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        except OSError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        if not deleted:
            raise HTTPException(status_code=404, detail="File not found")
        return {"deleted": post_id}

    return app
