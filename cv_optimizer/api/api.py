# File: cv_optimizer/api/api.py
from fastapi import APIRouter

from cv_optimizer.api.endpoints import edits, optimize, sessions

api_router = APIRouter(prefix="/api")
api_router.include_router(optimize.router, tags=["optimize"])
api_router.include_router(edits.router, tags=["edits"])
api_router.include_router(sessions.router, prefix="/sessions", tags=["sessions"])
