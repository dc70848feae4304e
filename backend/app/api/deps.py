from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generator

from fastapi import Depends, Header

from backend.app.db.session import SessionLocal
from backend.app.db.models.core_types import Role
from backend.services.errors import Forbidden


@dataclass(frozen=True)
class Actor:
    user_id: int | None
    role: Role


def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_actor(
    user_id: int | None = Header(default=None, alias="X-User-Id"),
    role: str | None = Header(default=None, alias="X-User-Role"),
) -> Actor:
    """Identité fournie par la couche d'authentification (externe)."""
    try:
        return Actor(user_id=user_id, role=Role((role or "").strip().lower()))
    except ValueError:
        raise Forbidden("Missing or unknown X-User-Role header") from None


def require_roles(*roles: Role) -> Callable[..., Actor]:
    allowed = {Role.admin, *roles}

    def _dependency(actor: Actor = Depends(get_actor)) -> Actor:
        if actor.role not in allowed:
            raise Forbidden(f"Role '{actor.role.value}' is not allowed to perform this action")
        return actor

    return _dependency


# Qui peut faire quoi
warehouse_staff = require_roles(Role.warehouse)
store_staff = require_roles(Role.store_manager)
any_staff = require_roles(Role.warehouse, Role.store_manager)
