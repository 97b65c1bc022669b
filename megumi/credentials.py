"""
User registration and login with salted PBKDF2 hashes.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass

from megumi.db import UserRecord
from megumi.errors import DuplicateEmail, InvalidCredentials, MissingField
from megumi.store import RecordStore

logger = logging.getLogger(__name__)

SALT_LENGTH = 16
DEFAULT_ITERATIONS = 120_000
MIN_ITERATIONS = 100_000
KEY_LENGTH = 64
DIGEST = "sha512"


@dataclass(frozen=True)
class PasswordHasher:
    iterations: int = DEFAULT_ITERATIONS
    salt_length: int = SALT_LENGTH
    key_length: int = KEY_LENGTH
    digest: str = DIGEST

    def __post_init__(self):
        if self.iterations < MIN_ITERATIONS:
            raise ValueError(
                f"iterations must be at least {MIN_ITERATIONS}, got {self.iterations}"
            )

    def new_salt(self) -> bytes:
        return secrets.token_bytes(self.salt_length)

    def derive(self, password: str, salt: bytes, iterations: int) -> bytes:
        return hashlib.pbkdf2_hmac(
            self.digest,
            password.encode("utf-8", "surrogatepass"),
            salt,
            iterations,
            dklen=self.key_length,
        )


class CredentialService:
    def __init__(self, store: RecordStore, hasher: PasswordHasher | None = None):
        self.store = store
        self.hasher = hasher or PasswordHasher()

    def register(self, email: str | None, password: str | None) -> UserRecord:
        if not email or not password:
            raise MissingField("Email and password are required.")

        users = self.store.users
        if users.find_by_email(email):
            raise DuplicateEmail()

        salt = self.hasher.new_salt()
        derived = self.hasher.derive(password, salt, self.hasher.iterations)
        user = users.insert(
            UserRecord(
                email=email,
                password_hash=derived.hex(),
                salt=salt.hex(),
                iteration_count=self.hasher.iterations,
            )
        )
        logger.info("Registered user %s", user.id)
        return user

    def login(self, email: str | None, password: str | None) -> UserRecord:
        if not email or not password:
            raise MissingField("Email and password are required.")

        user = self.store.users.find_by_email(email)
        if user is None:
            logger.info("Login rejected: unknown email")
            raise InvalidCredentials()

        iterations = user.iteration_count or self.hasher.iterations
        derived = self.hasher.derive(password, bytes.fromhex(user.salt), iterations)
        if not hmac.compare_digest(derived.hex(), user.password_hash):
            logger.info("Login rejected for user %s", user.id)
            raise InvalidCredentials()
        return user
