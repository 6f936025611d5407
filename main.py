"""PushSession: sortable push IDs and a client/session/event waterfall.

FastAPI application exposing:
- Session processing over cookies (/api/session)
- Push ID generation, decoding and hashing (/api/ids)
- Health and Prometheus metrics
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import (
    PORT, DEBUG, VERSION, SESSION_TIMEOUT_MS, RANDOMNESS_LENGTH, USE_STUBS,
    PUSHID_SECURE_RANDOM, COOKIE_PREFIX, COOKIE_SECURE, COOKIE_SAMESITE, CORS_ORIGINS,
)
from services.session_processor import get_processor
from utils.push_id import get_codec
from utils.logging_ import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic."""
    # Startup
    logger.info("=" * 60)
    logger.info(f"PushSession v{VERSION} starting up...")
    logger.info(f"  Port: {PORT}")
    logger.info(f"  Debug: {DEBUG}")
    logger.info(f"  Session timeout: {SESSION_TIMEOUT_MS} ms")
    logger.info(f"  Randomness length: {RANDOMNESS_LENGTH}")
    logger.info(f"  Stubs: {'on' if USE_STUBS else 'off (legacy IDs)'}")
    logger.info(f"  Random source: {'SystemRandom' if PUSHID_SECURE_RANDOM else 'seeded LCG'}")
    logger.info(
        f"  Cookies: prefix={COOKIE_PREFIX!r}, secure={COOKIE_SECURE}, samesite={COOKIE_SAMESITE}"
    )

    get_codec()
    get_processor()

    logger.info("PushSession ready.")
    logger.info("=" * 60)

    yield

    # Shutdown
    status = get_processor().status
    logger.info(
        f"PushSession shutting down ({status['events']} events, "
        f"{status['new_sessions']} sessions, {get_codec().generated} IDs)"
    )


app = FastAPI(
    title="PushSession",
    description="Sortable push IDs and cookie-based session waterfall.",
    version=VERSION,
    lifespan=lifespan,
)

# CORS (credentials only for explicitly listed origins)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials="*" not in CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount routers
from routers import session, ids, internal, metrics

app.include_router(session.router, tags=["Session"])
app.include_router(ids.router, tags=["Push IDs"])
app.include_router(internal.router, tags=["Internal"])
app.include_router(metrics.router, tags=["Metrics"])


@app.get("/")
async def root():
    return {
        "service": "PushSession",
        "version": VERSION,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=PORT, reload=DEBUG)
