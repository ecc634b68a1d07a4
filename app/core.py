# app/core.py
import math
import re
from pydantic import BaseModel
from typing import Optional, Dict, Any

# Columns a client may write. Anything else in a request body is dropped.
PRODUCT_FIELDS = ("name", "description", "price", "internal_cost", "is_active")

_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

_INT64_MIN = -2 ** 63
_INT64_MAX = 2 ** 63 - 1

class ProductIn(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    internal_cost: Optional[float] = None
    is_active: Optional[int] = None

def _finite(x: float) -> float:
    return x if math.isfinite(x) else 0.0

def _to_float(value: Any) -> float:
    """Leading-number parse; anything unparseable or non-finite becomes 0."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        try:
            return _finite(float(value))
        except OverflowError:
            return 0.0
    if value is None:
        return 0.0
    m = _LEADING_FLOAT.match(str(value))
    if not m:
        return 0.0
    try:
        return _finite(float(m.group(1)))
    except (OverflowError, ValueError):
        return 0.0

def _to_int(value: Any) -> int:
    """Leading-integer parse; results that SQLite cannot store become 0."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        n = value
    elif isinstance(value, float):
        if not math.isfinite(value):
            return 0
        n = int(value)
    elif value is None:
        return 0
    else:
        m = _LEADING_INT.match(str(value))
        if not m:
            return 0
        try:
            n = int(m.group(1))
        except ValueError:
            # longer than the interpreter's int-from-str digit limit
            return 0
    return n if _INT64_MIN <= n <= _INT64_MAX else 0

def product_in_from_payload(payload: Dict[str, Any]) -> ProductIn:
    """
    Build a ProductIn from a raw form/JSON mapping.

    Only whitelisted keys are read; keys the client did not send stay None
    so an update leaves those columns alone.
    """
    data: Dict[str, Any] = {}
    for key in PRODUCT_FIELDS:
        if key not in payload:
            continue
        raw = payload[key]
        if key in ("name", "description"):
            data[key] = None if raw is None else str(raw)
        elif key == "is_active":
            data[key] = _to_int(raw)
        else:
            data[key] = _to_float(raw)
    return ProductIn(**data)

def _make_product_fields(p: ProductIn) -> Dict[str, Any]:
    return p.model_dump(exclude_none=True)
