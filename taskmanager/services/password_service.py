"""
Hash y verificación de contraseñas con argon2id.
"""
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from argon2.low_level import Type

from taskmanager.core.config import Settings


class PasswordService:
    def __init__(self, settings: Settings) -> None:
        self._ph = PasswordHasher(
            time_cost=settings.password_hash_time_cost,
            memory_cost=settings.password_hash_memory_cost,
            parallelism=settings.password_hash_parallelism,
            hash_len=32,
            salt_len=16,
            type=Type.ID,
        )
        # Hash señuelo: se verifica contra él cuando el email no existe, para que
        # el tiempo de respuesta no revele si la cuenta existe.
        self._dummy_hash = self._ph.hash("taskmanager-timing-dummy")

    def hash_password(self, password: str) -> str:
        return self._ph.hash(password)

    def verify_password(self, password: str, password_hash: str | None) -> bool:
        if not password_hash:
            self.verify_dummy(password)
            return False
        try:
            return self._ph.verify(password_hash, password)
        except (VerificationError, InvalidHashError):
            return False

    def verify_dummy(self, password: str) -> None:
        try:
            self._ph.verify(self._dummy_hash, password)
        except VerificationError:
            pass
