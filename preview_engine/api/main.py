from fastapi import APIRouter

from preview_engine.api.routes import preview, utils

api_router = APIRouter()
api_router.include_router(utils.router)
api_router.include_router(preview.router)
