# storefront/domain/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from storefront.domain.money import parse_money
from storefront.utils.settings import PAYMENT_METHODS


def _min_length(value: str, length: int, message: str) -> str:
    if value is None or len(value.strip()) < length:
        raise ValueError(message)
    return value


class OwnerKey(BaseModel):
    """Who a cart belongs to.

    The user id is authoritative when present; anonymous visitors are
    identified by their session cart id only.
    """

    model_config = ConfigDict(frozen=True)

    session_cart_id: str = Field(..., min_length=1)
    user_id: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)

    @property
    def lookup_key(self) -> str:
        if self.user_id:
            return f"user:{self.user_id}"
        return f"session:{self.session_cart_id}"


class CartItem(BaseModel):
    """One product's price snapshot and quantity within a cart."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    product_id: str
    name: str
    slug: str
    image: str
    price: Decimal
    qty: int = Field(default=1, ge=0)

    @field_validator("product_id")
    @classmethod
    def _product_required(cls, v):
        return _min_length(v, 1, "Product is required")

    @field_validator("name")
    @classmethod
    def _name_required(cls, v):
        return _min_length(v, 1, "Name is required")

    @field_validator("slug")
    @classmethod
    def _slug_required(cls, v):
        return _min_length(v, 1, "Slug is required")

    @field_validator("image")
    @classmethod
    def _image_required(cls, v):
        return _min_length(v, 1, "Image is required")

    @field_validator("price", mode="before")
    @classmethod
    def _two_decimals(cls, v):
        return parse_money(v)


class CartOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str | None = None
    session_cart_id: str
    items: List[CartItem]
    items_price: Decimal
    shipping_price: Decimal
    tax_price: Decimal
    total_price: Decimal


class ActionResult(BaseModel):
    """Uniform outcome of a user-triggered mutation."""

    success: bool
    message: str
    error: str | None = None


class CartActionResult(ActionResult):
    cart: CartOut | None = None


# ---------------------------------------------------------------------------
# catalogue
# ---------------------------------------------------------------------------
class ProductIn(BaseModel):
    name: str
    slug: str
    category: str
    brand: str
    description: str
    stock: int = Field(..., ge=0)
    images: List[str]
    is_featured: bool = False
    banner: str | None = None
    price: Decimal

    @field_validator("name")
    @classmethod
    def _name(cls, v):
        return _min_length(v, 3, "Name must have atleast three characters")

    @field_validator("slug")
    @classmethod
    def _slug(cls, v):
        return _min_length(v, 3, "Slug must have atleast three characters")

    @field_validator("category")
    @classmethod
    def _category(cls, v):
        return _min_length(v, 3, "Category must have atleast three characters")

    @field_validator("brand")
    @classmethod
    def _brand(cls, v):
        return _min_length(v, 3, "Brand must have atleast three characters")

    @field_validator("description")
    @classmethod
    def _description(cls, v):
        return _min_length(v, 3, "Description must have atleast three characters")

    @field_validator("images")
    @classmethod
    def _images(cls, v):
        if not v:
            raise ValueError("Product must at least have one image")
        return v

    @field_validator("price", mode="before")
    @classmethod
    def _price(cls, v):
        return parse_money(v)


class ProductUpdateIn(ProductIn):
    id: str = Field(..., min_length=1)


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    slug: str
    category: str
    brand: str
    description: str
    images: List[str]
    is_featured: bool
    banner: str | None = None
    price: Decimal
    stock: int
    rating: Decimal
    num_reviews: int
    created_at: datetime


class ProductPage(BaseModel):
    data: List[ProductOut]
    total_pages: int


class CategoryCount(BaseModel):
    category: str
    count: int


# ---------------------------------------------------------------------------
# reviews
# ---------------------------------------------------------------------------
class ReviewIn(BaseModel):
    title: str
    description: str
    product_id: str
    rating: int

    @field_validator("title")
    @classmethod
    def _title(cls, v):
        return _min_length(v, 3, "Title must atleast have 3 characters")

    @field_validator("description")
    @classmethod
    def _description(cls, v):
        return _min_length(v, 3, "Description must atleast have 3 characters")

    @field_validator("product_id")
    @classmethod
    def _product(cls, v):
        return _min_length(v, 1, "Product is required")

    @field_validator("rating")
    @classmethod
    def _rating_range(cls, v):
        if v < 1:
            raise ValueError("Rating must atleast be 1")
        if v > 5:
            raise ValueError("Rating must at most be 5")
        return v


class ReviewOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    product_id: str
    user_id: str
    user_name: str | None = None
    title: str
    description: str
    rating: int
    is_verified_purchase: bool
    created_at: datetime


# ---------------------------------------------------------------------------
# users
# ---------------------------------------------------------------------------
class UserCreate(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=255)
    email: str | None = None
    role: str = "user"


class ShippingAddressIn(BaseModel):
    full_name: str
    street_address: str
    city: str
    postal_code: str
    country: str
    lat: float | None = None
    lng: float | None = None

    @field_validator("full_name")
    @classmethod
    def _full_name(cls, v):
        return _min_length(v, 3, "Name must at least have 3 characters")

    @field_validator("street_address")
    @classmethod
    def _street(cls, v):
        return _min_length(v, 3, "Address must at least have 3 characters")

    @field_validator("city")
    @classmethod
    def _city(cls, v):
        return _min_length(v, 3, "City must at least have 3 characters")

    @field_validator("postal_code")
    @classmethod
    def _postal_code(cls, v):
        return _min_length(v, 3, "Postal code must at least have 3 characters")

    @field_validator("country")
    @classmethod
    def _country(cls, v):
        return _min_length(v, 3, "Country code must at least have 3 characters")


class PaymentMethodIn(BaseModel):
    type: str

    @field_validator("type")
    @classmethod
    def _known_method(cls, v):
        _min_length(v, 1, "Payment method is required")
        if v not in PAYMENT_METHODS:
            raise ValueError("Invalid payment method")
        return v


class ProfileIn(BaseModel):
    name: str
    email: str

    @field_validator("name")
    @classmethod
    def _name(cls, v):
        return _min_length(v, 3, "Name must at least have three characters")

    @field_validator("email")
    @classmethod
    def _email(cls, v):
        return _min_length(v, 3, "Email must at least have three characters")


class UserUpdateIn(ProfileIn):
    id: str = Field(..., min_length=1)
    role: str | None = None


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str | None = None
    role: str
    address: dict | None = None
    payment_method: str | None = None


class UserPage(BaseModel):
    data: List[UserRead]
    total_pages: int
