"""Runtime configuration: policy flags (toggleable during tests/runtime) and the bootstrap admin."""
import os
from typing import NamedTuple, Optional


class PolicyState(NamedTuple):
    enforce_ownership: bool
    strict_status_transitions: bool


def _env_flag(name: str) -> bool:
    return os.getenv(name, "0") in ("1", "true", "True")


# Defaults keep the permissive behaviour: any USER may read any user's orders
# and any status may follow any other.
state = PolicyState(
    enforce_ownership=_env_flag("ENFORCE_ORDER_OWNERSHIP"),
    strict_status_transitions=_env_flag("STRICT_STATUS_TRANSITIONS"),
)


def set_enforce_ownership(value: bool):
    global state
    state = state._replace(enforce_ownership=bool(value))


def is_ownership_enforced() -> bool:
    return state.enforce_ownership


def set_strict_status_transitions(value: bool):
    global state
    state = state._replace(strict_status_transitions=bool(value))


def is_strict_status_transitions() -> bool:
    return state.strict_status_transitions


class AdminAccount(NamedTuple):
    username: str
    email: str
    password: str


def bootstrap_admin() -> Optional[AdminAccount]:
    """Administrator to create at startup, from ADMIN_USERNAME/ADMIN_PASSWORD/ADMIN_EMAIL.

    Public signup only ever grants ROLE_USER, so the first administrator has
    to come from here.
    """
    username = os.getenv("ADMIN_USERNAME")
    password = os.getenv("ADMIN_PASSWORD")
    if not username or not password:
        return None
    return AdminAccount(username, os.getenv("ADMIN_EMAIL", f"{username}@localhost"), password)
