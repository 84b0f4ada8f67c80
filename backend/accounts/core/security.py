# accounts/core/security.py
import bcrypt
from jose import jwt, JWTError
from accounts.core.config import settings


def get_password_hash(password: str) -> str:
    """bcrypt-хеш пароля для поля password"""
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')

def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        # Пользователь зарегистрирован без пароля
        return False
    return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))

def get_token_subject(token: str) -> str:
    """sub из подписанного JWT. Токены выпускает внешний сервис авторизации."""
    try:
        claims = jwt.decode(
            token,
            settings.security.jwt_secret_key.get_secret_value(),
            algorithms=[settings.security.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError:
        raise ValueError("Token expired")
    except JWTError:
        raise ValueError("Invalid token")
    sub = claims.get("sub")
    if not sub:
        raise ValueError("Invalid token payload")
    return sub
