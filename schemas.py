"""
Database Schemas for the storefront

Each Pydantic model corresponds to one MongoDB collection.
Collection name is the lowercase of the class name:
- User -> "user"
- Product -> "product"
- Cart -> "cart"
- Order -> "order"
- Contact -> "contact"
"""
from datetime import datetime
from typing import List, Literal, Optional, Type, TypeVar

from pydantic import BaseModel, EmailStr, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from errors import ValidationError

CATEGORIES = ("Jewelry", "Jewellery", "Sarees", "Stationery")
PAYMENT_METHODS = ("COD", "Card", "UPI")
ORDER_STATUSES = ("Pending", "Processing", "Shipped", "Delivered", "Cancelled")
CONTACT_STATUSES = ("new", "read", "replied")

Category = Literal["Jewelry", "Jewellery", "Sarees", "Stationery"]
PaymentMethod = Literal["COD", "Card", "UPI"]
OrderStatus = Literal["Pending", "Processing", "Shipped", "Delivered", "Cancelled"]
ContactStatus = Literal["new", "read", "replied"]

M = TypeVar("M", bound=BaseModel)


class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    country: Optional[str] = None


class User(BaseModel):
    name: str = Field(..., min_length=1, description="Full name")
    email: EmailStr
    password_hash: str = Field(..., description="Hashed password")
    phone: Optional[str] = None
    address: Optional[Address] = None
    is_admin: bool = False


class Ratings(BaseModel):
    average: float = Field(0, ge=0, le=5)
    count: int = Field(0, ge=0)


class Product(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    category: Category
    subcategory: Optional[str] = None
    images: List[str] = []
    features: List[str] = []
    stock: int = Field(0, ge=0)
    ratings: Ratings = Ratings()
    featured: bool = False
    new_arrival: bool = False
    new_arrival_date: Optional[datetime] = None

    @field_validator("name", "subcategory")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class CartItem(BaseModel):
    product_id: str
    quantity: int = Field(1, ge=1)


class Cart(BaseModel):
    user_id: str
    items: List[CartItem] = []


class ShippingAddress(BaseModel):
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    pincode: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)


class OrderItem(BaseModel):
    product_id: str
    name: str
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0)


class Order(BaseModel):
    user_id: str
    items: List[OrderItem]
    shipping_address: ShippingAddress
    payment_method: PaymentMethod = "COD"
    total_amount: float = Field(..., ge=0)
    status: OrderStatus = "Pending"


class Contact(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: str = ""
    subject: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    status: ContactStatus = "new"


def validate(model: Type[M], data: dict) -> M:
    """Validate ``data`` against a collection schema before it is persisted.

    Raises errors.ValidationError naming every failing field.
    """
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        raise ValidationError(f"Invalid {model.__name__.lower()}: " + ", ".join(fields), fields=fields)
