from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
import bcrypt
import logging
from app.core.config import settings

# Configurar logging
logger = logging.getLogger(__name__)

# Configuración JWT
ALGORITHM = "HS256"

# bcrypt solo considera los primeros 72 bytes
BCRYPT_MAX_BYTES = 72


def _truncate_password_safely(password: str) -> bytes:
    """
    Truncar contraseña de forma segura a 72 bytes para bcrypt.
    Retorna bytes directamente para evitar problemas de codificación.
    """
    password_bytes = password.encode("utf-8")
    if len(password_bytes) <= BCRYPT_MAX_BYTES:
        return password_bytes
    return password_bytes[:BCRYPT_MAX_BYTES]


class PasswordHasher:
    """Hash y verificación de contraseñas con bcrypt (costo fijo)"""

    def __init__(self, rounds: Optional[int] = None):
        self.rounds = rounds or settings.bcrypt_rounds

    def hash(self, password: str) -> str:
        """Generar hash de contraseña usando bcrypt directamente"""
        safe_password_bytes = _truncate_password_safely(password)
        salt = bcrypt.gensalt(rounds=self.rounds)
        hashed = bcrypt.hashpw(safe_password_bytes, salt)
        return hashed.decode("utf-8")

    def verify(self, plain_password: str, hashed_password: Optional[str]) -> bool:
        """Verificar contraseña plana contra hash; nunca lanza por contraseña incorrecta"""
        if not plain_password or not hashed_password:
            return False
        try:
            safe_password_bytes = _truncate_password_safely(plain_password)
            return bcrypt.checkpw(safe_password_bytes, hashed_password.encode("utf-8"))
        except ValueError:
            logger.warning("Stored password hash is malformed")
            return False


def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None,
    secret_key: Optional[str] = None,
) -> str:
    """Crear token JWT de acceso"""
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.access_token_expire_minutes)

    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, secret_key or settings.secret_key, algorithm=ALGORITHM)
    return encoded_jwt


def verify_token(token: str, secret_key: Optional[str] = None) -> Optional[dict]:
    """Verificar y decodificar token JWT"""
    try:
        payload = jwt.decode(token, secret_key or settings.secret_key, algorithms=[ALGORITHM])
        return payload
    except JWTError:
        return None
