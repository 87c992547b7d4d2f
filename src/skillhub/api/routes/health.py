"""
Health check route: GET /api/health
"""

from __future__ import annotations

import os
import time

from fastapi import APIRouter

router = APIRouter()


@router.get("/api/health")
async def health():
    """Basic health check - returns 200 if server is running."""
    from skillhub import __version__

    return {
        "status": "ok",
        "service": "skillhub",
        "version": __version__,
        "pid": os.getpid(),
        "timestamp": time.strftime("%Y-%m-%dT%H:%M:%S"),
    }
