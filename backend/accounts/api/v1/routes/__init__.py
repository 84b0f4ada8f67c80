from fastapi import APIRouter
from .user import router as user_router
from .stripe import router as stripe_router


api_router = APIRouter()

api_router.include_router(user_router)
api_router.include_router(stripe_router)
