from __future__ import annotations

from typing import Any

import bcrypt

from ..matching.data_store import InMemoryStore

_password_hashes: dict[str, str] = {}

_DEMO_CREDENTIALS = {
    "ana.torres@example.org": "volunteer123",
    "luis.quispe@example.org": "volunteer123",
    "carla.mendoza@example.org": "volunteer123",
    "admin@example.org": "admin123",
}


def _hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode(), bcrypt.gensalt()).decode()


def _verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode(), hashed.encode())


def set_password(email: str, plain: str) -> None:
    _password_hashes[email.strip().lower()] = _hash_password(plain)


def _seed_credentials() -> None:
    """Pre-seed demo passwords for the bundled profiles on import."""
    for email, plain in _DEMO_CREDENTIALS.items():
        set_password(email, plain)


def authenticate(store: InMemoryStore, email: str, password: str) -> dict[str, Any] | None:
    """Verify credentials. Returns ``{user_id, email, role}`` or ``None``."""
    hashed = _password_hashes.get(email.strip().lower())
    if not hashed or not _verify_password(password, hashed):
        return None
    profile = store.get_user_by_email(email)
    if profile is None:
        return None
    return {"user_id": profile.id, "email": profile.email, "role": profile.role}


_seed_credentials()
