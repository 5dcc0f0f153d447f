from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

Role = Literal["user", "admin"]
Category = Literal["Electronics", "Clothing", "Books", "Home & Garden", "Sports", "Other"]

SORT_FIELDS = ("createdAt", "price", "name", "rating", "numReviews", "stock")
SHIPPING_FIELDS = ("street", "city", "state", "zipCode", "country")


# --- Identities ---

class UserOut(BaseModel):
    id: str
    name: str
    email: str
    role: Role = "user"
    address: Optional[str] = None
    phone: Optional[str] = None


class Identity(UserOut):
    """Canonical user record, whichever backend it came from."""
    passwordHash: Optional[str] = None
    createdAt: Optional[datetime] = None

    def public(self) -> UserOut:
        return UserOut(**self.model_dump(include=set(UserOut.model_fields)))


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)


class UserLogin(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    phone: Optional[str] = None


class AuthResponse(BaseModel):
    success: bool = True
    token: str
    user: UserOut


# --- Catalog ---

class ProductIn(BaseModel):
    name: str = Field(..., min_length=1)
    description: str
    price: float = Field(..., ge=0)
    image: str = ""
    category: Category
    brand: Optional[str] = None
    stock: int = Field(0, ge=0)
    rating: float = Field(0, ge=0, le=5)
    numReviews: int = Field(0, ge=0)
    featured: bool = False

    @field_validator("name", "brand")
    @classmethod
    def strip(cls, v):
        return v.strip() if isinstance(v, str) else v


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    image: Optional[str] = None
    category: Optional[Category] = None
    brand: Optional[str] = None
    stock: Optional[int] = Field(None, ge=0)
    rating: Optional[float] = Field(None, ge=0, le=5)
    numReviews: Optional[int] = Field(None, ge=0)
    featured: Optional[bool] = None

    # fields may be omitted but not cleared; brand alone is nullable on a product
    @field_validator(
        "name", "description", "price", "image", "category", "stock", "rating", "numReviews", "featured"
    )
    @classmethod
    def not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class Product(ProductIn):
    id: str
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class ProductFilter(BaseModel):
    keyword: Optional[str] = None
    category: Optional[str] = None
    minPrice: Optional[float] = None
    maxPrice: Optional[float] = None


class ProductSort(BaseModel):
    field: str = "createdAt"
    order: Literal["asc", "desc"] = "desc"

    @field_validator("field")
    @classmethod
    def known_field(cls, v):
        if v not in SORT_FIELDS:
            raise ValueError(f"sortBy must be one of {', '.join(SORT_FIELDS)}")
        return v


class Pagination(BaseModel):
    page: int = Field(1, ge=1)
    limit: int = Field(12, ge=1)

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


class ProductPage(BaseModel):
    success: bool = True
    products: List[Product]
    page: int
    pages: int
    total: int


# --- Cart & orders ---

class CartItem(BaseModel):
    productId: str
    name: str
    price: float = Field(..., ge=0)
    image: Optional[str] = ""
    quantity: int = Field(1, ge=1)


class ShippingAddress(BaseModel):
    street: str = ""
    city: str = ""
    state: str = ""
    zipCode: str = ""
    country: str = ""

    def missing_fields(self) -> List[str]:
        return [f for f in SHIPPING_FIELDS if not getattr(self, f).strip()]


class OrderItem(BaseModel):
    product: str
    name: str
    price: float = Field(..., ge=0)
    image: Optional[str] = ""
    quantity: int = Field(..., ge=1)


class PaymentResult(BaseModel):
    id: Optional[str] = None
    status: Optional[str] = None
    update_time: Optional[str] = None
    email_address: Optional[str] = None


class OrderCreate(BaseModel):
    orderItems: List[OrderItem] = []
    shippingAddress: ShippingAddress = ShippingAddress()
    paymentMethod: str = "stripe"
    itemsPrice: Optional[float] = None
    taxPrice: float = Field(0, ge=0)
    shippingPrice: float = Field(0, ge=0)
    totalPrice: Optional[float] = None


class Owner(BaseModel):
    id: str
    name: str
    email: str


class Order(BaseModel):
    id: str
    userId: str
    user: Optional[Owner] = None
    orderItems: List[OrderItem]
    shippingAddress: ShippingAddress
    paymentMethod: str
    itemsPrice: float
    taxPrice: float
    shippingPrice: float
    totalPrice: float
    isPaid: bool = False
    paidAt: Optional[datetime] = None
    paymentResult: Optional[PaymentResult] = None
    isDelivered: bool = False
    deliveredAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None


# --- Payments & checkout ---

class PaymentIntent(BaseModel):
    id: str
    clientSecret: Optional[str] = None
    amount: int
    currency: str = "usd"
    status: str


class PaymentIntentRequest(BaseModel):
    amount: float = Field(..., gt=0)


class CheckoutRequest(BaseModel):
    cartItems: List[CartItem] = []
    shippingAddress: ShippingAddress = ShippingAddress()
    paymentMethod: str = "stripe"
    paymentMethodId: Optional[str] = None
