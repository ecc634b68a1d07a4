# app/models.py
from pydantic import BaseModel
from typing import Optional

class Product(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: float = 0.0
    internal_cost: float = 0.0
    is_active: int = 1
