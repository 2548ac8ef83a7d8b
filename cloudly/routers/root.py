# Filename: cloudly/routers/root.py
from fastapi import APIRouter
from ..config import settings

router = APIRouter()


@router.get("/", tags=["root"])
def root():
    """
    Health check with app version.
    """
    return {
        "status": "ok",
        "message": f"{settings.app_name} API is running...",
        "version": settings.app_version,
    }
