from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

PaymentMethod = Literal[
    "cod", "razorpay", "razorpay_upi", "upi", "paytm",
    "cashfree", "bharatpay", "payyou", "phonepe",
]

ORDER_STATUSES = (
    "pending",
    "awaiting_payment",
    "awaiting_verification",
    "confirmed",
    "shipped",
    "delivered",
    "cancelled",
)
OrderStatus = Literal[
    "pending", "awaiting_payment", "awaiting_verification",
    "confirmed", "shipped", "delivered", "cancelled",
]


# --- Auth ---

class UserCreate(BaseModel):
    full_name: str = Field(..., min_length=2, max_length=80)
    email: EmailStr
    password: str = Field(..., min_length=6)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str


# --- Catalog ---

class ProductIn(BaseModel):
    name: str = Field(..., min_length=1)
    slug: Optional[str] = None
    description: Optional[str] = None
    price: float = Field(..., gt=0)
    sale_price: Optional[float] = Field(None, ge=0)
    stock: int = Field(0, ge=0)
    images: List[str] = []
    sizes: List[str] = []
    colors: List[str] = []
    category_id: Optional[str] = None
    featured: bool = False
    active: bool = True
    cod_available: bool = True
    shipping_charge: Optional[float] = Field(None, ge=0)


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(None, gt=0)
    sale_price: Optional[float] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    images: Optional[List[str]] = None
    sizes: Optional[List[str]] = None
    colors: Optional[List[str]] = None
    category_id: Optional[str] = None
    featured: Optional[bool] = None
    active: Optional[bool] = None
    cod_available: Optional[bool] = None


class CategoryIn(BaseModel):
    name: str = Field(..., min_length=1)
    slug: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None


class ReviewIn(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)


class RecentlyViewedItem(BaseModel):
    id: str
    name: str
    price: float
    sale_price: Optional[float] = None
    image: Optional[str] = None
    slug: Optional[str] = None
    viewed_at: Optional[datetime] = None


class RecentlyViewedIn(BaseModel):
    item: RecentlyViewedItem
    items: List[RecentlyViewedItem] = []


# --- Cart / wishlist ---

class CartItemIn(BaseModel):
    product_id: str
    quantity: int = Field(1, ge=1)
    size: Optional[str] = None
    color: Optional[str] = None


class CartQuantity(BaseModel):
    quantity: int


class WishlistIn(BaseModel):
    product_id: str


# --- Checkout ---

class Address(BaseModel):
    fullName: str = Field(..., min_length=2)
    email: EmailStr
    phone: str = Field(..., min_length=10)
    address: str = Field(..., min_length=5)
    city: str = Field(..., min_length=2)
    state: str = Field(..., min_length=2)
    pincode: str

    @field_validator("pincode")
    @classmethod
    def pincode_is_six_digits(cls, v: str) -> str:
        v = v.strip()
        if len(v) != 6 or not v.isascii() or not v.isdigit():
            raise ValueError("Valid pincode is required")
        return v


class BuyNowItem(BaseModel):
    product_id: str
    quantity: int = Field(1, ge=1)
    size: Optional[str] = None
    color: Optional[str] = None


class QuoteRequest(BaseModel):
    payment_method: Optional[PaymentMethod] = None
    coupon_code: Optional[str] = None
    buy_now: Optional[BuyNowItem] = None
    # Guest checkout sends the lines it wants to buy; signed-in users use the cart.
    items: Optional[List[BuyNowItem]] = None


class OrderCreate(QuoteRequest):
    payment_method: PaymentMethod
    address: Address
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None


class CouponApply(BaseModel):
    code: str
    buy_now: Optional[BuyNowItem] = None
    items: Optional[List[BuyNowItem]] = None
    payment_method: Optional[PaymentMethod] = None


class UtrSubmit(BaseModel):
    utr: str


# --- Payments ---

class RazorpayOrderIn(BaseModel):
    amount: float = Field(..., gt=0)


class RazorpayVerifyIn(BaseModel):
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


# --- Admin ---

class CouponIn(BaseModel):
    code: str = Field(..., min_length=2, max_length=40)
    description: Optional[str] = None
    discount_type: Literal["percentage", "fixed"] = "percentage"
    discount_value: float = Field(..., gt=0)
    max_discount_amount: Optional[float] = Field(None, ge=0)
    min_order_amount: Optional[float] = Field(None, ge=0)
    usage_limit: Optional[int] = Field(None, ge=1)
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def upper_code(cls, v: str) -> str:
        return v.strip().upper()


class PincodeIn(BaseModel):
    pincode: str
    city: Optional[str] = None
    state: Optional[str] = None
    delivery_days: Optional[int] = Field(5, ge=0)
    cod_available: bool = True
    is_active: bool = True


class ShippingSettings(BaseModel):
    shipping_enabled: bool = True
    shipping_charge: float = Field(99, ge=0)
    free_shipping_threshold: float = Field(999, ge=0)
    razorpay_shipping_charge: float = Field(0, ge=0)
    upi_shipping_charge: float = Field(0, ge=0)
    razorpay_upi_shipping_charge: float = Field(0, ge=0)
    paytm_shipping_charge: float = Field(0, ge=0)
    cashfree_shipping_charge: float = Field(0, ge=0)
    bharatpay_shipping_charge: float = Field(0, ge=0)
    payyou_shipping_charge: float = Field(0, ge=0)
    phonepe_shipping_charge: float = Field(0, ge=0)
    cod_shipping_charge: float = Field(0, ge=0)


class ProductShipping(BaseModel):
    shipping_charge: Optional[float] = Field(None, ge=0)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class AdminGrant(BaseModel):
    email: EmailStr


# --- Support ---

class SupportMessageIn(BaseModel):
    message: str = Field(..., min_length=1, max_length=4000)

    @field_validator("message")
    @classmethod
    def strip_message(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Message cannot be empty")
        return v


class AiReplyIn(BaseModel):
    message: str
    conversationId: str
    userId: str


class AiReplyOut(BaseModel):
    reply: str
    stored: bool = False


class StaleOrdersResult(BaseModel):
    success: bool
    message: str
    cancelled: int
    orderIds: List[str] = []
