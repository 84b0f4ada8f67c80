# accounts/models/activity.py
import base64
import binascii
import re
from datetime import datetime, timezone
from typing import Optional

from bson import ObjectId
from pydantic import Field

from accounts.core.exceptions import ValidationError
from .user import Document

SKYLINK_PREFIX = "sia://"
# 34 байта в base64url без паддинга
SKYLINK_RE = re.compile(r"^[a-zA-Z0-9_-]{46}$")


def validate_skylink(skylink: str) -> str:
    """Проверяет skylink и возвращает его без префикса sia://"""
    if skylink.startswith(SKYLINK_PREFIX):
        skylink = skylink[len(SKYLINK_PREFIX):]
    if not SKYLINK_RE.match(skylink):
        raise ValidationError("invalid skylink")
    try:
        base64.urlsafe_b64decode(skylink + "==")
    except (binascii.Error, ValueError):
        raise ValidationError("invalid skylink")
    return skylink


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Skylink(Document):
    skylink: str
    size: int = 0
    name: str = ""


class Upload(Document):
    user_id: ObjectId
    skylink_id: ObjectId
    timestamp: datetime = Field(default_factory=_now)


class Download(Upload):
    # Размер частичного скачивания, 0 - скачан весь skylink
    partial_bytes: int = Field(0, alias="bytes")


class RegistryRead(Document):
    user_id: ObjectId
    timestamp: datetime = Field(default_factory=_now)


class RegistryWrite(RegistryRead):
    pass
