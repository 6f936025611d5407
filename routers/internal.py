"""Internal endpoints: health.

Used by monitoring, not by tracked clients.
"""

import time

from fastapi import APIRouter

from config import PUSHID_SECURE_RANDOM, VERSION
from models import HealthResponse
from services.session_processor import get_processor

router = APIRouter()

_start_time = time.time()


@router.get("/api/health", response_model=HealthResponse)
async def health():
    """Health check endpoint."""
    config = get_processor().manager.config
    return HealthResponse(
        status="healthy",
        version=VERSION,
        uptime_seconds=round(time.time() - _start_time, 1),
        session_timeout_ms=config.session_timeout,
        randomness_length=config.randomness_length,
        use_stubs=config.use_stubs,
        secure_random=PUSHID_SECURE_RANDOM,
    )
