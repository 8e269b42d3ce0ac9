"""Main API router — aggregates all endpoint modules."""

from fastapi import APIRouter

from prompt_library.api.collections import categories_router, collections_router
from prompt_library.api.library import library_router, models_router
from prompt_library.api.projects import router as projects_router
from prompt_library.api.prompts import router as prompts_router

api_router = APIRouter()

api_router.include_router(prompts_router, prefix="/prompts", tags=["prompts"])
api_router.include_router(collections_router, prefix="/collections", tags=["collections"])
api_router.include_router(categories_router, prefix="/categories", tags=["categories"])
api_router.include_router(projects_router, prefix="/projects", tags=["projects"])
api_router.include_router(library_router, prefix="/library", tags=["library"])
api_router.include_router(models_router, prefix="/models", tags=["models"])
