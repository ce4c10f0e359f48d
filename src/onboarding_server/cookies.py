"""Session-cookie transport.

The resume token travels only in an HttpOnly, SameSite=Lax cookie whose
Max-Age matches the sliding session TTL, so the browser drops it at the
same moment the server would reject it.
"""

from fastapi import Response

from onboarding_flow.config import FlowSettings

from onboarding_server.config import ServerSettings


def set_session_cookie(
    response: Response,
    token: str,
    settings: ServerSettings,
    flow_settings: FlowSettings,
) -> None:
    response.set_cookie(
        key=settings.cookie_name,
        value=token,
        max_age=int(flow_settings.session_ttl.total_seconds()),
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
    )


def clear_session_cookie(response: Response, settings: ServerSettings) -> None:
    response.delete_cookie(
        key=settings.cookie_name,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
    )


def apply_session_cookie(
    response: Response,
    token: str | None,
    settings: ServerSettings,
    flow_settings: FlowSettings,
) -> None:
    """Refresh the cookie when a token is returned, clear it otherwise."""
    if token:
        set_session_cookie(response, token, settings, flow_settings)
    else:
        clear_session_cookie(response, settings)
