# accounts/models/user.py
import enum
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from accounts.core.exceptions import DecodeError


class Tier(enum.IntEnum):
    FREE = 1
    PREMIUM5 = 2
    PREMIUM20 = 3
    PREMIUM80 = 4


class Document(BaseModel):
    """Базовая модель документа MongoDB"""
    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        populate_by_name=True,
    )

    id: Optional[ObjectId] = Field(None, alias="_id")

    @classmethod
    def from_mongo(cls, doc: Mapping[str, Any]):
        try:
            return cls.model_validate(doc)
        except PydanticValidationError as e:
            raise DecodeError(f"failed to decode {cls.__name__}: {e}") from e

    def to_mongo(self) -> dict:
        doc = self.model_dump(by_alias=True)
        if doc.get("_id") is None:
            doc.pop("_id", None)
        return doc


class User(Document):
    sub: str
    first_name: str = Field("", alias="firstName")
    last_name: str = Field("", alias="lastName")
    email: str = ""
    password_hash: str = Field("", alias="password")
    # Нет, пока клиент в Stripe не создан
    stripe_id: Optional[str] = Field(None, alias="stripeId")
    tier: Tier = Tier.FREE
    subscribed_until: Optional[datetime] = Field(None, alias="subscribedUntil")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="createdAt"
    )

    def to_mongo(self) -> dict:
        doc = super().to_mongo()
        doc["tier"] = int(self.tier)
        if doc.get("stripeId") is None:
            doc.pop("stripeId", None)
        return doc

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<User(id={self.id}, sub={self.sub}, tier={self.tier})>"
