# accounts/api/v1/routes/user.py
from fastapi import APIRouter, Depends, Query, status
from accounts.core.config import settings
from accounts.core.dependencies import (
    get_activity_repository,
    get_current_sub,
    get_current_user,
    get_user_service,
)
from accounts.core.schemas.accounts import (
    ActivityItem,
    ActivityPage,
    UserCreate,
    UserResponse,
    UserStatsResponse,
)
from accounts.models.user import User
from accounts.repositories.activity_repository import ActivityRepository
from accounts.services.user_service import UserService
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/user", tags=["user"])


def _page_params(
    offset: int = Query(0, ge=0),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size, alias="pageSize"),
) -> tuple[int, int]:
    return offset, page_size


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    user_create: UserCreate,
    sub: str = Depends(get_current_sub),
    user_service: UserService = Depends(get_user_service),
):
    """Регистрация пользователя по sub из токена"""
    user = await user_service.register(sub, user_create)
    logger.info(f"Successful registration for user ID: {user.id}")
    return UserResponse.from_user(user)


@router.get("", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Получение информации о текущем пользователе"""
    return UserResponse.from_user(current_user)


@router.get("/uploads", response_model=ActivityPage)
async def get_uploads(
    page: tuple[int, int] = Depends(_page_params),
    current_user: User = Depends(get_current_user),
    activity: ActivityRepository = Depends(get_activity_repository),
):
    """Загрузки пользователя, новые первыми"""
    offset, page_size = page
    rows, total = await activity.uploads(current_user.id, offset, page_size)
    return ActivityPage(
        items=[ActivityItem.from_row(r) for r in rows],
        offset=offset,
        page_size=page_size,
        count=total,
    )


@router.get("/downloads", response_model=ActivityPage)
async def get_downloads(
    page: tuple[int, int] = Depends(_page_params),
    current_user: User = Depends(get_current_user),
    activity: ActivityRepository = Depends(get_activity_repository),
):
    """Скачивания пользователя с учётом частичных скачиваний"""
    offset, page_size = page
    rows, total = await activity.downloads(current_user.id, offset, page_size)
    return ActivityPage(
        items=[ActivityItem.from_row(r) for r in rows],
        offset=offset,
        page_size=page_size,
        count=total,
    )


@router.get("/stats", response_model=UserStatsResponse)
async def get_stats(
    current_user: User = Depends(get_current_user),
    activity: ActivityRepository = Depends(get_activity_repository),
):
    counts = await activity.stats(current_user.id)
    return UserStatsResponse(
        uploads=counts["uploads"],
        downloads=counts["downloads"],
        registry_reads=counts["registry_reads"],
        registry_writes=counts["registry_writes"],
    )
