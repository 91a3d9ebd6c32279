import uuid

from sqlalchemy import Column, Integer, String, Float, DateTime, JSON
from .db import Base


def new_id() -> str:
    # Opaque, store-assigned document identifier
    return uuid.uuid4().hex


class User(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=new_id)
    username = Column(String, nullable=False, unique=True, index=True)
    # pbkdf2 hash, never the plaintext
    password = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)
    # set of role labels such as 'ROLE_USER', 'ROLE_ADMIN', kept sorted
    roles = Column(JSON, nullable=False, default=list)


class Product(Base):
    __tablename__ = "products"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    price = Column(Float, nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    image_url = Column(String, nullable=True)


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(32), primary_key=True, default=new_id)
    # reference by id only; no foreign key so orders survive independently of users
    user_id = Column(String, nullable=False, index=True)
    # embedded OrderItem documents: productId, productName, quantity, price
    items = Column(JSON, nullable=False, default=list)
    # caller-supplied, stored verbatim
    total_amount = Column(Float, nullable=False, default=0)
    status = Column(String, nullable=False)
    order_date = Column(DateTime, nullable=False)
