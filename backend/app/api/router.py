"""
All API routes
"""
from fastapi import APIRouter

from app.api.v1 import admin, verification

api_router = APIRouter(prefix="/api/v1")

# Admin listing
api_router.include_router(admin.router)

# Submission, review and status lookups
api_router.include_router(verification.router)
