# app/main.py
import json
import logging
import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional, Dict, Any

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, get_settings
from .database import ProductStore
from .logic import (
    list_products_logic, get_product_logic, search_products_logic,
    update_product_logic, delete_product_logic, add_product_logic,
    exec_logic, fetch_logic,
)

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))

STATUS_NOTICES = {
    "added": "Product added.",
    "updated": "Product updated.",
}

async def _read_payload(request: Request) -> Dict[str, Any]:
    """Form or JSON body as a plain dict."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise HTTPException(status_code=400, detail="Invalid request body.")
        if not isinstance(body, dict):
            raise HTTPException(status_code=400, detail="Invalid request body.")
        return body
    form = await request.form()
    return {k: v for k, v in form.items()}


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    store = ProductStore(settings.db_path)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.reset_on_startup:
            store.reset()
        else:
            store.init_schema()
        yield

    app = FastAPI(title="catalog-store", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    # Replaced in tests with an httpx.MockTransport.
    app.state.fetch_transport = None

    # ---------------------------
    # Error handlers
    # ---------------------------
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return PlainTextResponse(str(exc.detail), status_code=exc.status_code)

    @app.exception_handler(sqlite3.Error)
    async def database_error(request: Request, exc: sqlite3.Error):
        logger.exception("database error on %s %s", request.method, request.url.path)
        return PlainTextResponse("Internal server error.", status_code=500)

    # Catch-all. The response is produced here so the traceback is logged once.
    @app.middleware("http")
    async def unhandled_error(request: Request, call_next):
        try:
            return await call_next(request)
        except Exception:
            logger.exception("unhandled error on %s %s", request.method, request.url.path)
            return PlainTextResponse("Internal server error.", status_code=500)

    # ---------------------------
    # Product pages
    # ---------------------------
    @app.get("/")
    async def home(request: Request):
        products = await list_products_logic(store)
        return templates.TemplateResponse(request, "home.html", {"products": products})

    @app.get("/search")
    async def search(request: Request, q: Optional[str] = Query(None)):
        products = await search_products_logic(store, q)
        return templates.TemplateResponse(
            request, "search_results.html", {"search_term": q or "", "products": products}
        )

    @app.get("/add-product")
    async def add_product_form(request: Request):
        return templates.TemplateResponse(request, "add_product.html", {})

    @app.post("/add-product")
    async def add_product(request: Request):
        payload = await _read_payload(request)
        new_id = await add_product_logic(store, payload)
        return RedirectResponse(f"/product/{new_id}?status=added", status_code=303)

    @app.get("/product/{product_id}")
    async def product_detail(request: Request, product_id: str, status: Optional[str] = None):
        product = await get_product_logic(store, product_id)
        return templates.TemplateResponse(
            request, "product_detail.html",
            {"product": product, "notice": STATUS_NOTICES.get(status or "")},
        )

    @app.post("/product/{product_id}/update")
    async def update_product(request: Request, product_id: str):
        payload = await _read_payload(request)
        pid = await update_product_logic(store, product_id, payload)
        return RedirectResponse(f"/product/{pid}?status=updated", status_code=303)

    @app.get("/product/{product_id}/delete")
    async def delete_product(product_id: str):
        pid = await delete_product_logic(store, product_id)
        return PlainTextResponse(f"Product {pid} deleted.")

    # ---------------------------
    # Debug: operator diagnostics (off unless debug_endpoints)
    # ---------------------------
    @app.get("/debug/exec")
    async def debug_exec(request: Request, cmd: Optional[str] = Query(None)):
        result = await exec_logic(settings, cmd)
        return templates.TemplateResponse(request, "debug_output.html", {
            "title": "Command Output",
            "source": " ".join(result.argv),
            "output": result.stdout,
            "truncated": result.truncated,
        })

    @app.get("/debug/fetch")
    async def debug_fetch(request: Request, url: Optional[str] = Query(None)):
        result = await fetch_logic(settings, url, transport=app.state.fetch_transport)
        return templates.TemplateResponse(request, "debug_output.html", {
            "title": f"Fetched content (HTTP {result.status_code})",
            "source": result.url,
            "output": result.body,
            "truncated": result.truncated,
        })

    return app


app = create_app()
