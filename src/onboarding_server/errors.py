"""Global exception handlers — map core exceptions to HTTP status codes.

``SessionFailure`` carries a reason code and always means "this cookie is
no longer good": 401, reason in the body, cookie cleared.

The service raises ``ValueError`` for the remaining expected conditions
(unknown applicant, stage not applicable, stage not reached yet, already
completed).  The handler inspects the message to pick a status code.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from onboarding_flow.errors import SessionFailure

from onboarding_server.cookies import clear_session_cookie

logger = logging.getLogger(__name__)

# --- Keyword patterns in ValueError messages and their HTTP status codes ---
# Checked in order; first match wins.
_VALUE_ERROR_PATTERNS: list[tuple[str, int]] = [
    # "Onboarding already completed"
    ("already", 409),
    # Unknown or terminated applicant, unknown stage token
    ("not found", 404),
    # Stage outside the applicant's flow
    ("not applicable", 400),
    # Stage ahead of the applicant's position
    ("not reached", 403),
]


# --- Client-safe messages keyed by HTTP status code ---
# Applicant ids and stage names stay in the server log.
_SAFE_MESSAGES: dict[int, str] = {
    404: "Resource not found",
    409: "Onboarding already completed",
    400: "Invalid request",
    403: "Stage not available yet",
}


async def session_failure_handler(request: Request, exc: SessionFailure) -> JSONResponse:
    """Map a rejected resume session to 401 and drop the cookie."""
    response = JSONResponse(
        status_code=401,
        content={"detail": exc.message, "reason": exc.reason.value},
    )
    clear_session_cookie(response, request.app.state.settings)
    return response


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """Map service ``ValueError`` to a contextual HTTP error response.

    Falls back to 400 for unrecognised messages.  The raw message is
    logged server-side but never sent to the client.
    """
    msg = str(exc)
    status = 400  # default
    for pattern, code in _VALUE_ERROR_PATTERNS:
        if pattern in msg.lower():
            status = code
            break

    logger.warning("ValueError [%d] at %s: %s", status, request.url, msg)
    safe_detail = _SAFE_MESSAGES.get(status, "Invalid request")
    return JSONResponse(status_code=status, content={"detail": safe_detail})


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all (including ``FlowContractError``): log traceback, return 500."""
    logger.exception("Unhandled exception at %s", request.url)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )
