import logging
import os
import sys
import time
from contextlib import asynccontextmanager
from typing import List

from fastapi import FastAPI, Depends, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from starlette.middleware.base import BaseHTTPMiddleware

from .db import SessionLocal, get_db, init_db
from . import config, crud, schemas
from .auth import ROLE_USER, create_access_token, has_role, require_role, resolve_principal

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("storefront.access")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def setup_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, status and duration for every request except /health."""

    async def dispatch(self, request: Request, call_next):
        if request.url.path == "/health":
            return await call_next(request)

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        status = response.status_code
        if status >= 500:
            level = logging.ERROR
        elif status >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        access_logger.log(level, "%s %s %d %.1fms", request.method, request.url.path, status, duration_ms)
        return response


setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    account = config.bootstrap_admin()
    if account:
        db = SessionLocal()
        try:
            crud.seed_admin(db, account)
        finally:
            db.close()
    yield


app = FastAPI(title="Storefront API", lifespan=lifespan)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=3600,
)


@app.exception_handler(OperationalError)
async def store_unavailable(request: Request, exc: OperationalError):
    # No retries: the request fails as a whole
    logger.error("store unavailable during %s %s: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(status_code=500, content={"detail": "store unavailable"})


def check_order_access(principal, user_id: str):
    # Only applied when ownership enforcement is switched on
    if config.is_ownership_enforced() and not has_role(principal, "ADMIN") and principal.id != user_id:
        logger.warning("user %s denied access to orders of %s", principal.username, user_id)
        raise HTTPException(status_code=403, detail="forbidden: not the order owner")


@app.get("/health")
async def health():
    return {"status": "ok"}


# -------------------- Auth --------------------

@app.post("/api/auth/signup", response_model=schemas.MessageResponse)
def signup(payload: schemas.SignupRequest, request: Request, db: Session = Depends(get_db)):
    try:
        roles = crud.resolve_roles(payload.roles)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if roles != [ROLE_USER]:
        # Only an administrator may register accounts with other roles
        require_role(resolve_principal(request, db), "ADMIN")
    try:
        crud.register_user(db, payload, roles)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"message": "User registered successfully!"}


@app.post("/api/auth/signin", response_model=schemas.JwtResponse)
def signin(payload: schemas.SigninRequest, db: Session = Depends(get_db)):
    user = crud.authenticate(db, payload.username, payload.password)
    if not user:
        raise HTTPException(status_code=401, detail="invalid credentials")
    token = create_access_token(user.id, user.roles)
    return {
        "token": token,
        "type": "Bearer",
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "roles": user.roles,
    }


@app.get("/api/auth/me", response_model=schemas.UserRead)
def current_user(request: Request, db: Session = Depends(get_db)):
    principal = resolve_principal(request, db)
    return crud.get_user(db, principal.id)


# -------------------- Orders --------------------

@app.get("/api/orders", response_model=List[schemas.OrderRead])
def get_all_orders(request: Request, db: Session = Depends(get_db)):
    require_role(resolve_principal(request, db), "ADMIN")
    return crud.list_orders(db)


@app.get("/api/orders/user/{user_id}", response_model=List[schemas.OrderRead])
def get_orders_by_user(user_id: str, request: Request, db: Session = Depends(get_db)):
    principal = require_role(resolve_principal(request, db), "USER", "ADMIN")
    check_order_access(principal, user_id)
    return crud.list_orders_for_user(db, user_id)


@app.get("/api/orders/{order_id}", response_model=schemas.OrderRead)
def get_order(order_id: str, request: Request, db: Session = Depends(get_db)):
    principal = require_role(resolve_principal(request, db), "USER", "ADMIN")
    order = crud.get_order(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="order not found")
    check_order_access(principal, order.user_id)
    return order


@app.post("/api/orders", response_model=schemas.OrderRead)
def create_order(order: schemas.OrderCreate, request: Request, db: Session = Depends(get_db)):
    require_role(resolve_principal(request, db), "USER")
    return crud.create_order(db, order)


@app.put("/api/orders/{order_id}/status", response_model=schemas.OrderRead)
def update_order_status(order_id: str, request: Request, status: str = Query(...), db: Session = Depends(get_db)):
    require_role(resolve_principal(request, db), "ADMIN")
    try:
        updated = crud.update_order_status(db, order_id, status)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not updated:
        raise HTTPException(status_code=404, detail="order not found")
    return updated


@app.delete("/api/orders/{order_id}", status_code=204, response_class=Response)
def delete_order(order_id: str, request: Request, db: Session = Depends(get_db)):
    require_role(resolve_principal(request, db), "ADMIN")
    if not crud.delete_order(db, order_id):
        raise HTTPException(status_code=404, detail="order not found")
    return Response(status_code=204)


# -------------------- Products --------------------

@app.get("/api/products", response_model=List[schemas.ProductRead])
def get_products(db: Session = Depends(get_db)):
    return crud.list_products(db)


@app.get("/api/products/{product_id}", response_model=schemas.ProductRead)
def get_product(product_id: str, db: Session = Depends(get_db)):
    product = crud.get_product(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="product not found")
    return product


@app.post("/api/products", response_model=schemas.ProductRead)
def create_product(product: schemas.ProductCreate, request: Request, db: Session = Depends(get_db)):
    require_role(resolve_principal(request, db), "ADMIN")
    return crud.create_product(db, product)


@app.put("/api/products/{product_id}", response_model=schemas.ProductRead)
def update_product(product_id: str, product: schemas.ProductCreate, request: Request, db: Session = Depends(get_db)):
    require_role(resolve_principal(request, db), "ADMIN")
    updated = crud.update_product(db, product_id, product)
    if not updated:
        raise HTTPException(status_code=404, detail="product not found")
    return updated


@app.delete("/api/products/{product_id}", status_code=204, response_class=Response)
def delete_product(product_id: str, request: Request, db: Session = Depends(get_db)):
    require_role(resolve_principal(request, db), "ADMIN")
    if not crud.delete_product(db, product_id):
        raise HTTPException(status_code=404, detail="product not found")
    return Response(status_code=204)
