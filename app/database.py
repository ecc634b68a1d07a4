# app/database.py
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Any, List, Optional, Iterator, Union

from .core import PRODUCT_FIELDS
from .models import Product

# This file holds the SQLite-backed product store.

logger = logging.getLogger(__name__)

SEED_PRODUCTS = [
    ("Vulnerable Widget", "A widget with many security flaws.", 9.99, 5.00, 1),
    ("Insecure Gadget", "This gadget will expose your data.", 19.99, 10.00, 1),
    ("Broken Device", "Designed to fail security audits.", 29.99, 15.00, 0),
    ("Exploitable Tool", "Easy to hack, fun for pentesters.", 39.99, 20.00, 1),
]

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS products (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        description TEXT,
        price REAL,
        internal_cost REAL,
        is_active INTEGER DEFAULT 1
    )
"""

def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

def _row_to_product(row: sqlite3.Row) -> Product:
    data = dict(row)
    # Columns written outside this store may hold NULL.
    for key in ("price", "internal_cost"):
        if data.get(key) is None:
            data[key] = 0.0
    if data.get("is_active") is None:
        data["is_active"] = 0
    return Product(**data)


class ProductStore:
    """
    Product persistence over a single SQLite file.

    Each call opens its own connection and commits when it returns, so the
    store can be shared freely between requests.
    """

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(_SCHEMA)
        logger.info("products table ready (%s)", self.db_path)

    def reset(self) -> None:
        """Drop every row and insert the seed catalog."""
        with self._connect() as conn:
            conn.execute(_SCHEMA)
            conn.execute("DELETE FROM products")
            conn.executemany(
                "INSERT INTO products (name, description, price, internal_cost, is_active) "
                "VALUES (?, ?, ?, ?, ?)",
                SEED_PRODUCTS,
            )
        logger.info("products table reset with %d seed rows", len(SEED_PRODUCTS))

    def list_products(self) -> List[Product]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM products ORDER BY id").fetchall()
        return [_row_to_product(r) for r in rows]

    def get_product(self, product_id: int) -> Optional[Product]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM products WHERE id = ?", (product_id,)).fetchone()
        return _row_to_product(row) if row else None

    def search_products(self, term: str) -> List[Product]:
        pattern = f"%{_escape_like(term)}%"
        logger.debug("searching products for %r", term)
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM products "
                "WHERE name LIKE ? ESCAPE '\\' OR description LIKE ? ESCAPE '\\' "
                "ORDER BY id",
                (pattern, pattern),
            ).fetchall()
        return [_row_to_product(r) for r in rows]

    def create_product(self, fields: Dict[str, Any]) -> int:
        values = {k: v for k, v in fields.items() if k in PRODUCT_FIELDS}
        values.setdefault("price", 0.0)
        values.setdefault("internal_cost", 0.0)
        columns = [c for c in PRODUCT_FIELDS if c in values]
        sql = "INSERT INTO products ({}) VALUES ({})".format(
            ", ".join(columns), ", ".join("?" for _ in columns)
        )
        with self._connect() as conn:
            cur = conn.execute(sql, [values[c] for c in columns])
            new_id = cur.lastrowid
        logger.info("created product %s", new_id)
        return new_id

    def update_product(self, product_id: int, fields: Dict[str, Any]) -> bool:
        """Apply whitelisted fields; returns False when the row does not exist."""
        columns = [c for c in PRODUCT_FIELDS if c in fields]
        with self._connect() as conn:
            if not columns:
                row = conn.execute("SELECT 1 FROM products WHERE id = ?", (product_id,)).fetchone()
                return row is not None
            sql = "UPDATE products SET {} WHERE id = ?".format(
                ", ".join(f"{c} = ?" for c in columns)
            )
            cur = conn.execute(sql, [fields[c] for c in columns] + [product_id])
            changed = cur.rowcount > 0
        if changed:
            logger.info("updated product %s (%s)", product_id, ", ".join(columns))
        return changed

    def delete_product(self, product_id: int) -> bool:
        with self._connect() as conn:
            cur = conn.execute("DELETE FROM products WHERE id = ?", (product_id,))
            deleted = cur.rowcount > 0
        if deleted:
            logger.info("deleted product %s", product_id)
        return deleted
