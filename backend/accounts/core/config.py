# accounts/core/config.py
from pydantic_settings import BaseSettings
from pydantic import BaseModel, Field, SecretStr
from typing import Dict, Optional
from functools import lru_cache
from urllib.parse import quote_plus


class DataBaseConfig(BaseModel):
    host: str = Field(..., description="MongoDB host")
    port: int = Field(27017, description="MongoDB port")
    name: str = Field("skynet", description="Database name")
    user: str = Field(..., description="Database user")
    password: SecretStr = Field(..., description="Database password")  # SecretStr скрывает значение в логах
    query_timeout: Optional[float] = Field(10.0, description="Read query timeout in seconds")

    # Политика подключения, не настраивается через окружение
    compressors: str = "zstd,zlib,snappy"
    read_preference: str = "nearest"
    write_concern: str = "majority"
    write_concern_timeout_ms: int = 1000

    @property
    def DATABASE_URL(self) -> str:
        # Логин и пароль могут содержать символы, которые надо экранировать
        return (
            f"mongodb://{quote_plus(self.user)}:{quote_plus(self.password.get_secret_value())}"
            f"@{self.host}:{self.port}/"
            f"?compressors={self.compressors}"
            f"&readPreference={self.read_preference}"
            f"&w={self.write_concern}"
            f"&wtimeoutMS={self.write_concern_timeout_ms}"
        )

    @property
    def masked_url(self) -> str:
        return self.DATABASE_URL.replace(
            f":{quote_plus(self.password.get_secret_value())}@", ":***@"
        )


class StripeConfig(BaseModel):
    api_key: SecretStr = Field(SecretStr(""), description="Stripe secret API key")
    webhook_secret: SecretStr = Field(SecretStr(""), description="Stripe webhook signing secret")
    verify_webhook_signature: bool = Field(True, description="Verify Stripe-Signature header")
    timeout: float = Field(30.0, description="Stripe request timeout in seconds")
    reconcile_attempts: int = Field(3, ge=1, description="Conditional write attempts per event")
    # product id -> tier
    plans: Dict[str, int] = Field(
        default_factory=lambda: {
            "prod_J2FBsxvEl4VoUK": 1,
            "prod_J06Q7nJH3HJcYN": 2,
            "prod_J06Qu7zg1unO8R": 3,
            "prod_J06QbGjCvmZQGZ": 4,
        },
        description="Stripe product to tier mapping",
    )


class SecurityConfig(BaseModel):
    jwt_secret_key: SecretStr = Field(..., description="JWT secret key")
    jwt_algorithm: str = Field("HS256", description="JWT algorithm")


class Settings(BaseSettings):
    app_name: str = Field("Skynet Accounts", description="Application name")
    debug: bool = Field(False, description="Debug mode")
    default_page_size: int = Field(10, ge=1, description="Default page size")
    max_page_size: int = Field(100, ge=1, description="Max page size")

    db: DataBaseConfig
    stripe: StripeConfig = Field(default_factory=StripeConfig)
    security: SecurityConfig

    class Config:
        env_file = ".env"
        env_file_encoding = 'utf-8'
        case_sensitive = False
        env_nested_delimiter = '__'  # DB__HOST, STRIPE__WEBHOOK_SECRET


@lru_cache()
def get_settings() -> Settings:
    """Кэшированный экземпляр настроек"""
    return Settings()

settings = get_settings()
