"""
Canonical storefront models
Every source is normalized into these shapes before anything else touches it
"""
import math
from datetime import datetime
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional, Union

ProductId = Union[int, float, str]

class PhoneStoreProduct(BaseModel):
    """Extra record the phone store needs to put a phone in its cart"""
    id: Union[int, float]
    name: str
    discount_percent: float = 0
    original_price: float = 0
    image_url: str = ""

    def effective_price(self) -> int:
        """Discounted price, rounded half up to whole currency units"""
        discounted = self.original_price * (1 - (self.discount_percent or 0) / 100)
        return math.floor(discounted + 0.5)

    def to_payload(self) -> Dict[str, Any]:
        """Shape expected by the phone store cart API"""
        return {
            "id": self.id,
            "name": self.name,
            "discount": self.discount_percent,
            "original": self.original_price,
            "imageUrl": self.image_url,
        }

class Product(BaseModel):
    source_id: str
    source_table: str
    row_index: int
    key: str
    id: ProductId
    name: str
    price: Optional[float] = None
    image: str
    phone_store_product: Optional[PhoneStoreProduct] = None
    raw_row: Dict[str, Any] = Field(default_factory=dict)

class BestSeller(Product):
    total_sold: int = 0

class CartItem(BaseModel):
    key: str
    id: ProductId
    name: str
    price: Optional[float] = None
    quantity: int = Field(default=1, ge=1)
    source_id: str
    source_table: str
    image: Optional[str] = None
    phone_store_product: Optional[PhoneStoreProduct] = None

    @property
    def line_total(self) -> float:
        return (self.price or 0) * self.quantity

class OrderLine(BaseModel):
    product_id: Optional[ProductId] = None
    quantity: int = 1
    price: float = 0

class Order(BaseModel):
    """Read-only snapshot of an upstream order"""
    source_id: str
    id: str
    total: float = 0
    status: str = "unknown"
    created_at: Optional[datetime] = None
    item_count: int = 0
    customer_name: Optional[str] = None
    lines: List[OrderLine] = Field(default_factory=list)
    raw: Any = None

class OrderFetchResult(BaseModel):
    orders: List[Order] = Field(default_factory=list)
    all_sources_ok: bool = False
    failed_sources: List[str] = Field(default_factory=list)
