"""API v1 router."""
from fastapi import APIRouter

from mockprep.api.v1 import sessions, tests

api_router = APIRouter()

api_router.include_router(tests.router, prefix="/tests", tags=["Mock Tests"])
api_router.include_router(sessions.router, prefix="/sessions", tags=["Test Sessions"])
