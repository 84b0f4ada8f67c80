# accounts/core/schemas/accounts.py
from pydantic import BaseModel, EmailStr, Field, ConfigDict, field_validator
from typing import Any, List, Optional
from datetime import datetime


class UserCreate(BaseModel):
    first_name: str = Field("", alias="firstName", max_length=128)
    last_name: str = Field("", alias="lastName", max_length=128)
    email: EmailStr = Field(..., description="User email address")
    password: Optional[str] = Field(None, min_length=8, max_length=64)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator('email')
    @classmethod
    def lowercase_email(cls, v):
        return v.lower()


class UserResponse(BaseModel):
    id: str
    sub: str
    first_name: str = Field(serialization_alias="firstName")
    last_name: str = Field(serialization_alias="lastName")
    email: str
    tier: int
    subscribed_until: Optional[datetime] = Field(None, serialization_alias="subscribedUntil")

    @classmethod
    def from_user(cls, user) -> "UserResponse":
        return cls(
            id=str(user.id),
            sub=user.sub,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            tier=int(user.tier),
            subscribed_until=user.subscribed_until,
        )


class ActivityItem(BaseModel):
    id: str
    skylink: str = ""
    name: str = ""
    size: int = 0
    timestamp: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict) -> "ActivityItem":
        return cls(
            id=str(row.get("_id")),
            skylink=row.get("skylink") or "",
            name=row.get("name") or "",
            size=row.get("size") or 0,
            timestamp=row.get("timestamp"),
        )


class ActivityPage(BaseModel):
    items: List[ActivityItem] = []
    offset: int
    page_size: int = Field(serialization_alias="pageSize")
    count: int


class UserStatsResponse(BaseModel):
    uploads: int = 0
    downloads: int = 0
    registry_reads: int = Field(0, serialization_alias="registryReads")
    registry_writes: int = Field(0, serialization_alias="registryWrites")
