"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from coursebook.api.routes import courses, credits, users, coaches

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(courses.router)
api_router.include_router(credits.router)
api_router.include_router(users.router)
api_router.include_router(coaches.router)
