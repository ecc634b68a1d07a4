from typing import Optional, Dict, Any, List
from fastapi import HTTPException

import httpx

from .config import Settings
from .core import product_in_from_payload, _make_product_fields
from .database import ProductStore
from .diagnostics import (
    CommandResult, FetchResult, DiagnosticsError, run_command, fetch_url
)
from .models import Product

# This file contains the core logic for all routes. Route handlers in main.py
# only parse the request and render what these return.

def _parse_id(product_id: str, detail: str) -> int:
    try:
        return int(product_id)
    except (TypeError, ValueError):
        raise HTTPException(status_code=404, detail=detail)

# Product endpoints
async def list_products_logic(store: ProductStore) -> List[Product]:
    return store.list_products()

async def get_product_logic(store: ProductStore, product_id: str) -> Product:
    pid = _parse_id(product_id, "Product not found.")
    p = store.get_product(pid)
    if not p:
        raise HTTPException(status_code=404, detail="Product not found.")
    return p

async def search_products_logic(store: ProductStore, q: Optional[str]) -> List[Product]:
    return store.search_products(q or "")

async def update_product_logic(store: ProductStore, product_id: str, payload: Dict[str, Any]) -> int:
    pid = _parse_id(product_id, "Product not found or no changes.")
    fields = _make_product_fields(product_in_from_payload(payload))
    if not store.update_product(pid, fields):
        raise HTTPException(status_code=404, detail="Product not found or no changes.")
    return pid

async def delete_product_logic(store: ProductStore, product_id: str) -> int:
    pid = _parse_id(product_id, "Product not found for deletion.")
    if not store.delete_product(pid):
        raise HTTPException(status_code=404, detail="Product not found for deletion.")
    return pid

async def add_product_logic(store: ProductStore, payload: Dict[str, Any]) -> int:
    fields = _make_product_fields(product_in_from_payload(payload))
    if fields.get("name") is None:
        raise HTTPException(status_code=400, detail="Error adding product.")
    return store.create_product(fields)

# Debug endpoints
def _require_debug(settings: Settings):
    if not settings.debug_endpoints:
        raise HTTPException(status_code=404, detail="Not Found")

async def exec_logic(settings: Settings, cmd: Optional[str]) -> CommandResult:
    _require_debug(settings)
    if not cmd:
        raise HTTPException(status_code=400, detail='Please provide a "cmd" query parameter.')
    try:
        return await run_command(
            cmd, settings.allowed_commands, settings.command_timeout, settings.max_output_bytes
        )
    except DiagnosticsError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

async def fetch_logic(
    settings: Settings,
    url: Optional[str],
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FetchResult:
    _require_debug(settings)
    if not url:
        raise HTTPException(status_code=400, detail='Please provide a "url" query parameter.')
    try:
        return await fetch_url(
            url, settings.allowed_fetch_hosts, settings.fetch_timeout,
            settings.max_output_bytes, transport=transport,
        )
    except DiagnosticsError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
