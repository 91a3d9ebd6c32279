import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront import config, crud
from storefront.db import get_db, init_db, make_engine
from storefront.main import app


@pytest.fixture(scope="function")
def db_session():
    # Fresh in-memory store per test; StaticPool keeps the single connection alive
    engine = make_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    db = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture(scope="function")
def client(db_session):
    app.dependency_overrides[get_db] = lambda: db_session
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def default_policy():
    # Start every test with the permissive defaults and restore them afterwards
    saved = config.state
    config.set_enforce_ownership(False)
    config.set_strict_status_transitions(False)
    yield
    config.state = saved


def password_for(username: str) -> str:
    return f"{username}-pass"


def sign_in(client, username: str) -> dict:
    r = client.post("/api/auth/signin", json={"username": username, "password": password_for(username)})
    assert r.status_code == 200, r.text
    data = r.json()
    return {"headers": {"Authorization": f"Bearer {data['token']}"}, "id": data["id"]}


def sign_up(client, username: str, roles=None, headers=None):
    body = {"username": username, "email": f"{username}@example.com", "password": password_for(username)}
    if roles is not None:
        body["role"] = roles
    return client.post("/api/auth/signup", json=body, headers=headers or {})


@pytest.fixture
def admin_auth(client, db_session):
    # Administrators only come from the startup bootstrap account
    crud.seed_admin(db_session, config.AdminAccount("root", "root@example.com", password_for("root")))
    return sign_in(client, "root")


@pytest.fixture
def login(client):
    """Register ``username`` (through an admin when extra roles are asked for) and sign in."""
    def _make(username: str, roles=None, headers=None) -> dict:
        r = sign_up(client, username, roles, headers)
        assert r.status_code == 200, r.text
        return sign_in(client, username)
    return _make


@pytest.fixture
def user_auth(login):
    return login("alice")


@pytest.fixture
def other_user_auth(login):
    return login("bob")
