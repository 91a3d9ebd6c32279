"""Persistence gateway: one explicit repository per stored entity.

Each repository wraps the request-scoped SQLAlchemy session and exposes the
small, fixed set of calls the handlers need. Every call is a single round trip;
nothing here retries or spans more than one entity.
"""
import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models

logger = logging.getLogger(__name__)


def _commit(db: Session, entity):
    db.add(entity)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning("integrity error saving %s: %s", type(entity).__name__, e.orig)
        raise ValueError("integrity error") from e
    db.refresh(entity)
    return entity


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def find_all(self) -> List[models.User]:
        return self.db.query(models.User).all()

    def find_by_id(self, user_id: str) -> Optional[models.User]:
        return self.db.get(models.User, user_id)

    def find_by_username(self, username: str) -> Optional[models.User]:
        return self.db.query(models.User).filter(models.User.username == username).first()

    def exists_by_username(self, username: str) -> bool:
        return self.db.query(models.User.id).filter(models.User.username == username).first() is not None

    def exists_by_email(self, email: str) -> bool:
        return self.db.query(models.User.id).filter(models.User.email == email).first() is not None

    def exists_by_id(self, user_id: str) -> bool:
        return self.find_by_id(user_id) is not None

    def save(self, user: models.User) -> models.User:
        return _commit(self.db, user)

    def delete_by_id(self, user_id: str) -> None:
        self.db.query(models.User).filter(models.User.id == user_id).delete()
        self.db.commit()


class ProductRepository:
    def __init__(self, db: Session):
        self.db = db

    def find_all(self) -> List[models.Product]:
        return self.db.query(models.Product).all()

    def find_by_id(self, product_id: str) -> Optional[models.Product]:
        return self.db.get(models.Product, product_id)

    def exists_by_id(self, product_id: str) -> bool:
        return self.find_by_id(product_id) is not None

    def save(self, product: models.Product) -> models.Product:
        return _commit(self.db, product)

    def delete_by_id(self, product_id: str) -> None:
        self.db.query(models.Product).filter(models.Product.id == product_id).delete()
        self.db.commit()


class OrderRepository:
    def __init__(self, db: Session):
        self.db = db

    def find_all(self) -> List[models.Order]:
        return self.db.query(models.Order).all()

    def find_by_id(self, order_id: str) -> Optional[models.Order]:
        return self.db.get(models.Order, order_id)

    def find_by_user_id(self, user_id: str) -> List[models.Order]:
        return self.db.query(models.Order).filter(models.Order.user_id == user_id).all()

    def exists_by_id(self, order_id: str) -> bool:
        return self.find_by_id(order_id) is not None

    def save(self, order: models.Order) -> models.Order:
        return _commit(self.db, order)

    def delete_by_id(self, order_id: str) -> None:
        self.db.query(models.Order).filter(models.Order.id == order_id).delete()
        self.db.commit()
