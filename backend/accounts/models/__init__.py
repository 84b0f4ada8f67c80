# accounts/models/__init__.py
from .user import Document, Tier, User
from .activity import (
    Download,
    RegistryRead,
    RegistryWrite,
    Skylink,
    Upload,
    validate_skylink,
)

__all__ = [
    "Document",
    "Tier", "User",
    "Skylink", "Upload", "Download",
    "RegistryRead", "RegistryWrite",
    "validate_skylink",
]
