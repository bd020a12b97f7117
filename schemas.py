"""
Database Schemas for Onyxia

Each Pydantic model represents a document in a collection:
- Product -> "product"
- Order -> "order"
- City -> "city"
- Language -> "language"
- Session -> "session"

Order and cart fields travel in camelCase, the way the storefront sends them.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class OrderStatus(str, Enum):
    pending = "pending"
    processing = "processing"
    shipped = "shipped"
    delivered = "delivered"
    cancelled = "cancelled"


class DeliveryMethod(str, Enum):
    desktop = "desktop"
    home = "home"


class StockStatus(str, Enum):
    available = "available"
    unavailable = "unavailable"


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        use_enum_values=True,
        coerce_numbers_to_str=True,
    )


class CartItem(CamelModel):
    product_id: str = Field(..., min_length=1, description="Product reference")
    product_name: str = Field(..., min_length=1, description="Display name at checkout")
    product_image: str = Field(..., min_length=1, description="Image reference")
    price: float = Field(..., ge=0, allow_inf_nan=False, description="Unit price snapshot")
    quantity: int = Field(..., ge=1, description="Quantity ordered")


class OrderCreate(CamelModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    delivery_method: DeliveryMethod
    notes: str = ""
    items: List[CartItem] = Field(..., min_length=1)


class OrderItem(CamelModel):
    product_id: str = Field(..., description="Product ID")
    name: str = Field(..., description="Snapshot of product name at purchase time")
    image: str = Field(..., description="Snapshot of product image")
    price: float = Field(..., ge=0, allow_inf_nan=False, description="Unit price at purchase time")
    quantity: int = Field(..., ge=1, description="Quantity ordered")
    item_total: float = Field(..., ge=0, allow_inf_nan=False, description="price x quantity")


class Order(CamelModel):
    order_id: str = Field(..., description="Server assigned order reference")
    status: OrderStatus = OrderStatus.pending
    order_date: datetime
    first_name: str
    last_name: str
    phone: str
    address: str
    city: str
    delivery_method: DeliveryMethod
    notes: str = ""
    items: List[OrderItem]
    item_count: int = Field(..., ge=1)
    subtotal: float = Field(..., ge=0)
    shipping_fee: float = Field(..., ge=0)
    total: float = Field(..., ge=0)


class Stock(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    quantity: int = Field(0, ge=0)
    status: StockStatus = StockStatus.unavailable


class Product(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Product name")
    description: str = Field(..., description="Full description")
    small_description: str = Field("", alias="smallDescription")
    price: float = Field(..., ge=0, allow_inf_nan=False, description="Price in DZD")
    image: str = Field("", description="Primary image reference")
    additional_images: List[str] = Field(default_factory=list, alias="additionalImages")
    stock: Stock = Field(default_factory=Stock)
    display_home: bool = False
    home_position: int = 0


class City(CamelModel):
    name: str = Field(..., min_length=1)
    desktop_fee: int = Field(0, ge=0, description="Pickup desk fee")
    house_fee: int = Field(0, ge=0, description="Home delivery fee")


class Language(BaseModel):
    key: str = Field(..., min_length=1)
    en: str = ""
    ar: str = ""


class Session(BaseModel):
    sid: str
    username: str
    expires_at: datetime


class LoginRequest(BaseModel):
    username: str
    password: str


class StatusUpdate(BaseModel):
    status: Optional[str] = None
