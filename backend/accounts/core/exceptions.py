# accounts/core/exceptions.py
from typing import Optional
from fastapi import status


class AppException(Exception):
    """Базовое исключение для приложения"""
    def __init__(self, status_code: int, detail: str):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail

class AuthenticationError(AppException):
    """Ошибка аутентификации"""
    def __init__(self, detail: str = "Authentication failed"):
        super().__init__(status.HTTP_401_UNAUTHORIZED, detail)

class ValidationError(AppException):
    """Ошибка валидации данных"""
    def __init__(self, detail: str = "Validation error"):
        super().__init__(status.HTTP_422_UNPROCESSABLE_ENTITY, detail)

class NotFoundError(AppException):
    """Ресурс не найден"""
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status.HTTP_404_NOT_FOUND, detail)

class AlreadyExistsError(AppException):
    """Нарушение уникальности (sub, skylink)"""
    def __init__(self, detail: str = "Resource already exists"):
        super().__init__(status.HTTP_409_CONFLICT, detail)

class DatabaseError(AppException):
    """Ошибка базы данных"""
    def __init__(self, detail: str = "Database error"):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, detail)

class QueryError(DatabaseError):
    """Ошибка выполнения запроса/агрегации"""
    def __init__(self, detail: str = "DB query failed"):
        super().__init__(detail)

class DecodeError(DatabaseError):
    """Документ в БД не соответствует модели"""
    def __init__(self, detail: str = "failed to decode DB data"):
        super().__init__(detail)

class InternalError(AppException):
    """Ошибка, детали которой нельзя раскрывать клиенту"""
    def __init__(self, detail: str = "general internal failure"):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, detail)

class ExternalServiceError(AppException):
    """Ошибка при обращении к Stripe"""
    def __init__(self, detail: str = "External service error"):
        super().__init__(status.HTTP_502_BAD_GATEWAY, detail)

class CompositeError(AppException):
    """Основная ошибка плюс неудачная компенсация"""
    def __init__(self, primary: Exception, secondary: Optional[Exception]):
        self.primary = primary
        self.secondary = secondary
        detail = str(primary) if secondary is None else f"{primary}; {secondary}"
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, detail)

    @property
    def consistent(self) -> bool:
        """Удалось ли откатить изменения"""
        return self.secondary is None
