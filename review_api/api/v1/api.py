from fastapi import APIRouter

from review_api.api.v1.endpoints import annotations, videos

api_router = APIRouter()

api_router.include_router(videos.router, prefix="/videos", tags=["videos"])
api_router.include_router(annotations.router, prefix="/annotations", tags=["annotations"])
