import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from . import config, models, schemas
from .auth import ROLE_ADMIN, ROLE_USER, hash_password, verify_password
from .repositories import OrderRepository, ProductRepository, UserRepository
from .utils import utcnow

logger = logging.getLogger(__name__)

STATUS_PENDING = "PENDING"
STATUS_COMPLETED = "COMPLETED"
STATUS_CANCELLED = "CANCELLED"

# Only consulted when strict status transitions are switched on; a status may
# always be re-applied to itself.
ALLOWED_TRANSITIONS = {
    STATUS_PENDING: {STATUS_COMPLETED, STATUS_CANCELLED},
    STATUS_COMPLETED: set(),
    STATUS_CANCELLED: set(),
}

ROLE_NAMES = {"admin": ROLE_ADMIN, "user": ROLE_USER}


# -------------------- Orders --------------------

def list_orders(db: Session) -> List[models.Order]:
    return OrderRepository(db).find_all()


def list_orders_for_user(db: Session, user_id: str) -> List[models.Order]:
    return OrderRepository(db).find_by_user_id(user_id)


def get_order(db: Session, order_id: str) -> Optional[models.Order]:
    return OrderRepository(db).find_by_id(order_id)


def create_order(db: Session, order: schemas.OrderCreate) -> models.Order:
    # Caller-supplied status and orderDate are discarded. Items and the total
    # are stored as given: no recomputation, no user/product existence check,
    # no stock change.
    db_order = models.Order(
        user_id=order.user_id,
        items=[item.model_dump(mode="json") for item in order.items],
        total_amount=order.total_amount,
        status=STATUS_PENDING,
        order_date=utcnow(),
    )
    saved = OrderRepository(db).save(db_order)
    logger.info("order %s created for user %s", saved.id, saved.user_id)
    return saved


def check_transition(current: str, new: str) -> None:
    if new == current:
        return
    if new not in ALLOWED_TRANSITIONS:
        raise ValueError(f"unknown status: {new}")
    if new not in ALLOWED_TRANSITIONS.get(current, set()):
        raise ValueError(f"cannot change status from {current} to {new}")


def update_order_status(db: Session, order_id: str, status: str) -> Optional[models.Order]:
    repo = OrderRepository(db)
    order = repo.find_by_id(order_id)
    if not order:
        return None
    if config.is_strict_status_transitions():
        check_transition(order.status, status)
    previous = order.status
    order.status = status
    saved = repo.save(order)
    logger.info("order %s status %s -> %s", order_id, previous, status)
    return saved


def delete_order(db: Session, order_id: str) -> bool:
    repo = OrderRepository(db)
    if not repo.exists_by_id(order_id):
        return False
    repo.delete_by_id(order_id)
    logger.info("order %s deleted", order_id)
    return True


# -------------------- Products --------------------

def list_products(db: Session) -> List[models.Product]:
    return ProductRepository(db).find_all()


def get_product(db: Session, product_id: str) -> Optional[models.Product]:
    return ProductRepository(db).find_by_id(product_id)


def create_product(db: Session, product: schemas.ProductCreate) -> models.Product:
    db_product = models.Product(**product.model_dump())
    saved = ProductRepository(db).save(db_product)
    logger.info("product %s created", saved.id)
    return saved


def update_product(db: Session, product_id: str, product: schemas.ProductCreate) -> Optional[models.Product]:
    repo = ProductRepository(db)
    db_product = repo.find_by_id(product_id)
    if not db_product:
        return None
    for field, value in product.model_dump().items():
        setattr(db_product, field, value)
    saved = repo.save(db_product)
    logger.info("product %s updated", product_id)
    return saved


def delete_product(db: Session, product_id: str) -> bool:
    repo = ProductRepository(db)
    if not repo.exists_by_id(product_id):
        return False
    repo.delete_by_id(product_id)
    logger.info("product %s deleted", product_id)
    return True


# -------------------- Users --------------------

def resolve_roles(requested: Optional[List[str]]) -> List[str]:
    if not requested:
        return [ROLE_USER]
    roles = set()
    for name in requested:
        role = ROLE_NAMES.get(name.lower())
        if role is None:
            raise ValueError(f"Error: Role {name} is not found.")
        roles.add(role)
    return sorted(roles)


def register_user(db: Session, signup: schemas.SignupRequest, roles: Optional[List[str]] = None) -> models.User:
    # Roles requested in the payload are never read here; callers that may
    # grant more than ROLE_USER pass them explicitly.
    repo = UserRepository(db)
    if repo.exists_by_username(signup.username):
        raise ValueError("Error: Username is already taken!")
    if repo.exists_by_email(signup.email):
        raise ValueError("Error: Email is already in use!")

    user = models.User(
        username=signup.username,
        email=signup.email,
        password=hash_password(signup.password),
        roles=sorted(roles or [ROLE_USER]),
    )
    saved = repo.save(user)
    logger.info("user %s registered with roles %s", saved.username, saved.roles)
    return saved


def authenticate(db: Session, username: str, password: str) -> Optional[models.User]:
    user = UserRepository(db).find_by_username(username)
    if not user or not verify_password(password, user.password):
        return None
    return user


def get_user(db: Session, user_id: str) -> Optional[models.User]:
    return UserRepository(db).find_by_id(user_id)


def seed_admin(db: Session, account: config.AdminAccount) -> models.User:
    """Create the bootstrap administrator unless the username already exists."""
    existing = UserRepository(db).find_by_username(account.username)
    if existing:
        return existing
    signup = schemas.SignupRequest(username=account.username, email=account.email, password=account.password)
    return register_user(db, signup, roles=[ROLE_ADMIN])
