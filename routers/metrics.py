"""
Prometheus metrics endpoint.

Exposes /metrics in Prometheus text format. Zero dependencies beyond stdlib.

Metrics:
- pushsession_uptime_seconds (gauge)
- pushsession_events_total (counter)
- pushsession_new_clients_total (counter)
- pushsession_new_sessions_total (counter)
- pushsession_clears_total (counter)
- pushsession_ids_generated_total (counter)
- pushsession_session_timeout_seconds (gauge)
"""

import time
import logging
from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

logger = logging.getLogger("push-session")

router = APIRouter()

_start_time = time.time()


def _prom_line(name: str, value, help_text: str = "", type_: str = "gauge") -> str:
    """Format a single Prometheus metric line."""
    lines = []
    if help_text:
        lines.append(f"# HELP {name} {help_text}")
    if type_:
        lines.append(f"# TYPE {name} {type_}")

    lines.append(f"{name} {value}")
    return "\n".join(lines)


@router.get("/metrics", response_class=PlainTextResponse)
async def prometheus_metrics():
    """Prometheus-compatible metrics endpoint."""
    from services.session_processor import get_processor
    from utils.push_id import get_codec

    lines = []

    # ── Uptime ─────────────────────────────────────────
    lines.append(_prom_line(
        "pushsession_uptime_seconds",
        round(time.time() - _start_time, 1),
        "Seconds since PushSession started",
    ))

    # ── Sessions ───────────────────────────────────────
    try:
        status = get_processor().status
        lines.append(_prom_line("pushsession_events_total", status.get("events", 0), "Session events processed", "counter"))
        lines.append(_prom_line("pushsession_new_clients_total", status.get("new_clients", 0), "Client IDs minted", "counter"))
        lines.append(_prom_line("pushsession_new_sessions_total", status.get("new_sessions", 0), "Sessions started or rotated", "counter"))
        lines.append(_prom_line("pushsession_clears_total", status.get("clears", 0), "Session clears", "counter"))
        lines.append(_prom_line(
            "pushsession_session_timeout_seconds",
            status.get("session_timeout_ms", 0) / 1000,
            "Configured inactivity timeout",
        ))
    except Exception as e:
        logger.warning(f"metrics: session stats unavailable: {e}")

    # ── Push IDs ───────────────────────────────────────
    lines.append(_prom_line(
        "pushsession_ids_generated_total",
        get_codec().generated,
        "Push IDs generated by this process",
        "counter",
    ))

    return "\n\n".join(lines) + "\n"
