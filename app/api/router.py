from fastapi import APIRouter

from app.api.cache.routes import router as cache_router

router = APIRouter()
router.include_router(cache_router)
