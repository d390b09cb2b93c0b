"""Funciones de utilidad para el servicio de autenticación: hash de contraseñas y manejo de JWT."""

import base64
import hashlib
import logging
import time
from typing import Callable

import bcrypt
from jose import JWTError, jwt
from pydantic import ValidationError

from .errors import HashingError, InvalidTokenError, SigningError
from .schemas import SessionClaims

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


def _bcrypt_input(password: str) -> bytes:
    # Toda contraseña pasa por SHA-256 (44 bytes base64, sin NUL): un único espacio de entrada.
    return base64.b64encode(hashlib.sha256(password.encode("utf-8")).digest())


class PasswordHasher:
    """Salted bcrypt hashing with a configurable work factor."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """Genera el hash de una contraseña plana usando bcrypt."""
        try:
            return bcrypt.hashpw(_bcrypt_input(password), bcrypt.gensalt(rounds=self.rounds)).decode("ascii")
        except (ValueError, TypeError) as e:
            logger.error(f"Fallo al generar el hash de la contraseña: {e}", exc_info=True)
            raise HashingError("Could not hash password") from e

    def verify(self, password: str, password_hash: str) -> bool:
        """
        Verifica una contraseña plana contra un hash almacenado (comparación en tiempo constante).

        Returns False on mismatch; raises HashingError only for a malformed hash.
        """
        try:
            return bcrypt.checkpw(_bcrypt_input(password), password_hash.encode("ascii"))
        except (ValueError, TypeError) as e:
            logger.error(f"Hash de contraseña con formato inválido: {e}")
            raise HashingError("Stored password hash is malformed") from e


# --- Utilidades para Tokens JWT ---

class TokenService:
    """
    Signs and verifies session tokens (HS256 JWS).

    Built once at startup from the settings and shared read-only by every
    request. `clock` returns the current UNIX time and exists so expiry can
    be tested without sleeping.
    """

    def __init__(self, secret_key: bytes, expire_hours: int, clock: Callable[[], float] = time.time):
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        if expire_hours <= 0:
            raise ValueError("expire_hours must be positive")
        self._secret_key = secret_key
        self._validity_seconds = expire_hours * 3600
        self._clock = clock

    def issue(self, user_id: int, username: str, email: str) -> str:
        """
        Genera un token de acceso JWT con la identidad del usuario.

        Args:
            user_id: ID del usuario.
            username: Nombre de usuario.
            email: Email del usuario.

        Returns:
            String del JWT codificado.
        """
        now = int(self._clock())
        claims = {
            "user_id": user_id,
            "username": username,
            "email": email,
            "iat": now,
            "nbf": now,
            "exp": now + self._validity_seconds,
        }
        try:
            return jwt.encode(claims, self._secret_key, algorithm=ALGORITHM)
        except JWTError as e:
            logger.error(f"Fallo al firmar el token para user_id {user_id}: {e}", exc_info=True)
            raise SigningError("Could not sign token") from e

    def verify(self, token: str) -> SessionClaims:
        """
        Decodifica y valida un token JWT.

        Raises:
            InvalidTokenError: for any malformed, forged, not-yet-valid or expired token.
        """
        try:
            header = jwt.get_unverified_header(token)
            if header.get("alg") != ALGORITHM:
                self._reject(f"algoritmo inesperado {header.get('alg')!r}")

            # Las fechas se validan abajo con el reloj inyectado
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[ALGORITHM],
                options={
                    "verify_exp": False,
                    "verify_nbf": False,
                    "verify_iat": False,
                    "verify_aud": False,
                },
            )
        except JWTError as e:
            self._reject(str(e))

        try:
            claims = SessionClaims(**payload)
        except (ValidationError, TypeError) as e:
            self._reject(f"payload inválido: {e}")

        now = self._clock()
        if now < claims.nbf:
            self._reject("el token aún no es válido (nbf)")
        if now >= claims.exp:
            self._reject("el token ha expirado")
        return claims

    @staticmethod
    def _reject(reason: str):
        logger.warning(f"Fallo en verificación de token: {reason}")
        raise InvalidTokenError()
