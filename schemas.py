"""
Record Schemas for the Bookstore

Each top-level Pydantic model corresponds to one JSON collection on disk:

- Book -> "books"
- User -> "users"

Profile, Order and PaymentMethod are embedded in a User and have no
collection of their own.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

Role = Literal["customer", "staff", "admin"]
OrderStatus = Literal["pending", "processing", "shipped", "delivered"]


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class Book(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: int
    title: str
    author: str
    isbn: str
    price: float = Field(..., ge=0)
    category: str = "Uncategorized"
    description: str = ""
    publicationYear: Optional[int] = None
    publisher: str = ""
    stock: int = Field(0, ge=0)
    coverImage: str = Field("", description="Cover image URL")

    @field_validator("category", "description", "publisher", "coverImage", mode="before")
    @classmethod
    def blank_to_default(cls, v, info):
        if v is None or v == "":
            return cls.model_fields[info.field_name].default
        return v

    @field_validator("publicationYear", mode="before")
    @classmethod
    def blank_year(cls, v):
        return v if v not in (None, "", 0, "0") else None

    @field_validator("stock", mode="before")
    @classmethod
    def blank_stock(cls, v):
        return 0 if v in (None, "") else v


class Address(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    street: str = ""
    city: str = ""
    state: str = ""
    zipCode: str = ""
    country: str = ""


class OrderItem(BaseModel):
    """Snapshot of a book at checkout time, not a live reference."""
    bookId: Optional[int] = Field(None, validation_alias=AliasChoices("bookId", "id"))
    title: str = ""
    author: str = ""
    price: float = 0
    quantity: int = Field(1, ge=1)


class Order(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    # older orders may have been stored without an id
    orderId: Optional[str] = None
    orderDate: str = Field(default_factory=utcnow_iso)
    total: float = 0
    items: List[OrderItem] = Field(default_factory=list)
    status: OrderStatus = "pending"
    shippingAddress: Optional[Union[Dict[str, Any], str]] = None


class PaymentMethod(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    type: Optional[str] = None
    lastFour: Optional[str] = None
    brand: Optional[str] = None
    expiryMonth: Optional[Union[int, str]] = None
    expiryYear: Optional[Union[int, str]] = None
    isDefault: bool = False
    createdAt: str = Field(default_factory=utcnow_iso)


class Profile(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True, validate_assignment=True)

    firstName: str = ""
    lastName: str = ""
    email: str = ""
    avatar: Optional[str] = None
    bio: str = ""
    phone: str = ""
    address: Address = Field(default_factory=Address)
    orderHistory: List[Order] = Field(default_factory=list)
    paymentMethods: List[PaymentMethod] = Field(default_factory=list)

    @field_validator("address", mode="before")
    @classmethod
    def legacy_address(cls, v):
        # older records kept a single address line
        if v is None or v == "":
            return Address()
        if isinstance(v, str):
            return Address(street=v)
        return v

    @field_validator("orderHistory", "paymentMethods", mode="before")
    @classmethod
    def none_to_list(cls, v):
        return [] if v is None else v


class User(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str
    username: str
    password: str
    email: str
    fullName: str = ""
    firstName: str = ""
    lastName: str = ""
    role: Role = "customer"
    profile: Profile = Field(default_factory=Profile)
    createdAt: str = Field(default_factory=utcnow_iso)

    @field_validator("profile", mode="before")
    @classmethod
    def missing_profile(cls, v):
        return Profile() if v is None else v

    def public(self) -> Dict[str, Any]:
        """JSON-ready record with the password stripped."""
        return self.model_dump(mode="json", exclude={"password"})
