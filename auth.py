"""
auth.py
Operator login for the console (bcrypt hashing, verify, login, change password).
Credentials live in admin.txt next to the member file.
"""

from __future__ import annotations

import logging
from pathlib import Path

import bcrypt

import db
from errors import PersistenceError, ValidationError
from models import AdminUser

log = logging.getLogger(__name__)

DEFAULT_USERNAME = "admin"
DEFAULT_PASSWORD = "admin123"
MIN_PASSWORD_LENGTH = 6


def _to_bcrypt_secret(password: str) -> bytes:
    """
    bcrypt only uses the first 72 BYTES of the password.
    We truncate to 72 bytes to avoid ValueError and to make behavior explicit.
    """
    pw = password.encode("utf-8")
    if len(pw) > 72:
        pw = pw[:72]
    return pw


def hash_password(password: str, rounds: int = 12) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_to_bcrypt_secret(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(_to_bcrypt_secret(password), password_hash.encode("utf-8"))


def init_admin(path: Path = db.ADMIN_FILE) -> AdminUser:
    """
    Return the stored operator; on first run create admin/admin123
    and require a password change at first login.
    """
    admin = db.load_admin(path)
    if admin:
        return admin
    admin = AdminUser(DEFAULT_USERNAME, hash_password(DEFAULT_PASSWORD), force_password_change=True)
    if not db.save_admin(admin, path):
        raise PersistenceError(f"Could not create operator account in {path}.")
    log.info("Created default operator account in %s", path)
    return admin


def login(username: str, password: str, path: Path = db.ADMIN_FILE) -> bool:
    admin = db.load_admin(path)
    if not admin or admin.username != username:
        return False
    return verify_password(password, admin.password_hash)


def is_force_password_change(path: Path = db.ADMIN_FILE) -> bool:
    admin = db.load_admin(path)
    return bool(admin and admin.force_password_change)


def change_password(username: str, new_password: str, path: Path = db.ADMIN_FILE) -> None:
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    admin = AdminUser(username, hash_password(new_password), force_password_change=False)
    if not db.save_admin(admin, path):
        raise PersistenceError("Password was not changed: could not write credentials.")
