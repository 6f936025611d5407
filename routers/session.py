"""Session endpoints.

Processes one tracked event per request: identifiers come in through the
request cookies and the new ones go back as Set-Cookie headers, next to a
JSON body describing the transition.
"""

from fastapi import APIRouter, Request, Response

from config import SESSION_KEYS
from models import ClearResponse, ProcessedSession
from services.session_processor import get_processor
from utils.logging_ import logger

router = APIRouter()


@router.api_route("/api/session", methods=["GET", "POST"], response_model=ProcessedSession)
async def process_session(request: Request, response: Response):
    """Process a session event for the calling client.

    Returns client/session/event IDs, the sequence ID, the old and new
    state, and which levels of the waterfall were regenerated.
    """
    processor = get_processor()
    session, set_cookie_headers = processor.process(request.headers.get("cookie"))

    for header in set_cookie_headers:
        response.headers.append("set-cookie", header)

    logger.info(
        f"session_process: cID={session.client_id}, sID={session.session_id}, "
        f"seq={session.seq_id}, new_session={session.changes.is_new_session}"
    )
    return session


@router.delete("/api/session", response_model=ClearResponse)
async def clear_session(response: Response):
    """Expire every session cookie on the calling client."""
    processor = get_processor()
    for header in processor.clear():
        response.headers.append("set-cookie", header)
    return ClearResponse(cleared=list(SESSION_KEYS))
