"""TextWiki FastAPI application."""

import logging
from pathlib import Path

import jinja2
import uvicorn
from fastapi import Depends, FastAPI, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from textwiki.config import settings
from textwiki.core.models import Page
from textwiki.core.storage import (
    FileStorage,
    PageNotFoundError,
    PagePermissionError,
    Storage,
    StorageError,
    is_valid_title,
)

logger = logging.getLogger(__name__)

# Initialize app
app = FastAPI(
    title=settings.app_title,
    debug=settings.debug,
)

# Setup templates
templates_path = Path(__file__).parent / "templates"
templates = Jinja2Templates(directory=str(templates_path))

# Initialize storage
storage = FileStorage(settings.data_dir)


def get_storage() -> Storage:
    """Dependency providing the page store to handlers."""
    return storage


# Template context helper
def get_context(request: Request, **kwargs) -> dict:
    """Create base context for templates."""
    return {
        "request": request,
        "app_title": settings.app_title,
        **kwargs,
    }


def require_valid_title(title: str) -> str:
    """Reject titles that cannot name a page file."""
    if not is_valid_title(title):
        raise HTTPException(status_code=404, detail="Page not found")
    return title


def render(request: Request, template: str, page: Page) -> HTMLResponse:
    """Render ``<template>.html`` against a page.

    Lookup, parse and execution errors become a 500 response.
    """
    try:
        return templates.TemplateResponse(
            request,
            f"{template}.html",
            get_context(request, page=page),
        )
    except jinja2.TemplateError:
        logger.exception(
            "Failed to render template %r for page %r", template, page.title
        )
        raise HTTPException(status_code=500, detail="Template rendering failed")


@app.get("/")
async def index():
    """Redirect to the front page."""
    return RedirectResponse(url=f"/view/{settings.front_page}", status_code=302)


@app.get("/view/{title}", response_class=HTMLResponse)
async def view_page(
    request: Request,
    title: str = Depends(require_valid_title),
    store: Storage = Depends(get_storage),
):
    """View a page."""
    try:
        page = await store.load(title)
    except PageNotFoundError:
        raise HTTPException(status_code=404, detail="Page not found")
    except PagePermissionError as exc:
        logger.warning("Could not read page %r: %s", title, exc)
        raise HTTPException(status_code=403, detail="Page not readable")
    except StorageError as exc:
        logger.warning("Could not read page %r: %s", title, exc)
        raise HTTPException(status_code=404, detail="Page not found")
    return render(request, "view", page)


@app.get("/edit/{title}", response_class=HTMLResponse)
async def edit_page(
    request: Request,
    title: str = Depends(require_valid_title),
    store: Storage = Depends(get_storage),
):
    """Edit page form. Unreadable or missing pages start out empty."""
    try:
        page = await store.load(title)
    except StorageError:
        page = Page(title=title, body=b"")
    return render(request, "edit", page)


@app.post("/save/{title}")
async def save_page(
    title: str = Depends(require_valid_title),
    body: str = Form(""),
    store: Storage = Depends(get_storage),
):
    """Save page body and redirect to its view."""
    page = Page(title=title, body=body.encode("utf-8"))
    try:
        await store.save(page)
    except StorageError as exc:
        logger.error("Could not save page %r: %s", title, exc)
        raise HTTPException(status_code=500, detail="Could not save page")
    return RedirectResponse(url=f"/view/{title}", status_code=303)


def run() -> None:
    """Start the HTTP listener."""
    level = logging.DEBUG if settings.debug else settings.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
