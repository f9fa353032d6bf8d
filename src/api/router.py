from fastapi import APIRouter

from src.api.status import router as status_router

api_router = APIRouter()
api_router.include_router(status_router)
