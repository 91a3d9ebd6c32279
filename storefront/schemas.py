from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict

from .utils import sanitize_input

# JSON payloads use camelCase (userId, totalAmount, orderDate); Python code
# uses snake_case and may populate by either name.
API_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class OrderItem(BaseModel):
    product_id: str
    product_name: Optional[str] = None
    quantity: int
    price: float

    model_config = API_CONFIG


class OrderCreate(BaseModel):
    user_id: str = Field(..., min_length=1)
    items: List[OrderItem] = Field(default_factory=list)
    # Trusted verbatim: never recomputed from items
    total_amount: float = 0
    # Accepted for compatibility but always overwritten on creation
    status: Optional[str] = None
    order_date: Optional[datetime] = None

    model_config = API_CONFIG


class OrderRead(BaseModel):
    id: str
    user_id: str
    items: List[OrderItem] = []
    total_amount: float
    status: str
    order_date: datetime

    model_config = API_CONFIG


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    price: float = Field(..., ge=0)
    stock: int = Field(0, ge=0)
    image_url: Optional[str] = None

    model_config = API_CONFIG

    @field_validator("name", "description", "image_url")
    def strip_markup(cls, v: Optional[str]):
        # Product text is rendered by the storefront UI; keep it free of HTML
        if v is None:
            return v
        return sanitize_input(v)


class ProductRead(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    price: float
    stock: int
    image_url: Optional[str] = None

    model_config = API_CONFIG


class SignupRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=20)
    email: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=6, max_length=40)
    # Requested roles: 'admin' and/or 'user'; defaults to user
    roles: Optional[List[str]] = Field(default=None, alias="role")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("email")
    def looks_like_email(cls, v: str):
        if "@" not in v:
            raise ValueError("email must contain '@'")
        return v


class SigninRequest(BaseModel):
    username: str
    password: str


class UserRead(BaseModel):
    id: str
    username: str
    email: str
    roles: List[str] = []

    model_config = ConfigDict(from_attributes=True)


class JwtResponse(BaseModel):
    token: str
    type: str = "Bearer"
    id: str
    username: str
    email: str
    roles: List[str]


class MessageResponse(BaseModel):
    message: str
