"""
Creación y verificación de JWTs de acceso y refresh.

- Cada tipo de token se firma con su propio secreto: filtrar uno no permite
  forjar el otro.
- Claims: sub(user_id), iat, exp, jti.
- `verify_token` distingue `token_expired` de `token_invalid` en `AppError.code`.
"""
import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from uuid import uuid4

# Asegura que usamos PyJWT (no el paquete "jwt" incorrecto)
try:
    import jwt as pyjwt  # PyJWT expone jwt.encode/jwt.decode
    if not hasattr(pyjwt, "encode"):
        raise ImportError("Paquete 'jwt' incorrecto en el entorno")
except Exception as e:
    raise RuntimeError(
        "Conflicto de librerías JWT: instala PyJWT>=2 y desinstala el paquete 'jwt'. "
        "Ejecuta: pip uninstall jwt && pip install PyJWT"
    ) from e

from taskmanager.core.config import Settings
from taskmanager.core.result import Ok, Result, unauthenticated

_log = logging.getLogger("taskmanager.tokens")

TOKEN_EXPIRED = "token_expired"
TOKEN_INVALID = "token_invalid"


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class TokenService:
    def __init__(self, settings: Settings) -> None:
        self.algorithm = settings.jwt_algorithm
        self.access_ttl = timedelta(minutes=settings.access_token_expire_minutes)
        self.refresh_ttl = timedelta(days=settings.refresh_token_expire_days)
        self._secrets = {
            TokenKind.ACCESS: self._secret_or_random(settings.jwt_secret, "JWT_SECRET"),
            TokenKind.REFRESH: self._secret_or_random(settings.jwt_refresh_secret, "JWT_REFRESH_SECRET"),
        }
        if self._secrets[TokenKind.ACCESS] == self._secrets[TokenKind.REFRESH]:
            _log.warning("JWT_SECRET y JWT_REFRESH_SECRET son iguales; usa secretos distintos")

    @staticmethod
    def _secret_or_random(value: str | None, name: str) -> str:
        if value:
            return value
        _log.warning("%s no configurado; usando un secreto aleatorio por proceso (los tokens no sobreviven reinicios)", name)
        return secrets.token_urlsafe(48)

    def _ttl(self, kind: TokenKind) -> timedelta:
        return self.access_ttl if kind is TokenKind.ACCESS else self.refresh_ttl

    def create_token(self, user_id: str, kind: TokenKind, *, expires_in: timedelta | None = None) -> str:
        now = _now_utc()
        exp = now + (expires_in if expires_in is not None else self._ttl(kind))
        payload = {
            "sub": str(user_id),
            "iat": int(now.timestamp()),
            "exp": int(exp.timestamp()),
            "jti": str(uuid4()),
        }
        return pyjwt.encode(payload, self._secrets[kind], algorithm=self.algorithm)

    def issue_token_pair(self, user_id: str) -> TokenPair:
        return TokenPair(
            access_token=self.create_token(user_id, TokenKind.ACCESS),
            refresh_token=self.create_token(user_id, TokenKind.REFRESH),
        )

    def verify_token(self, token: str, kind: TokenKind = TokenKind.ACCESS) -> Result[str]:
        """Valida firma/expiración y devuelve `Ok(user_id)`."""
        try:
            payload = pyjwt.decode(
                token,
                key=self._secrets[kind],
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp"]},
            )
        except pyjwt.ExpiredSignatureError:
            return unauthenticated("Token expired", code=TOKEN_EXPIRED)
        except pyjwt.InvalidTokenError:
            return unauthenticated("Invalid token", code=TOKEN_INVALID)
        sub = payload.get("sub")
        if not isinstance(sub, str) or not sub:
            return unauthenticated("Invalid token", code=TOKEN_INVALID)
        return Ok(sub)
