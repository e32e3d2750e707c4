"""API layer: shared-container access and the shared-secret gate."""

from __future__ import annotations

import hmac

from fastapi import Depends, HTTPException, Request, status

from portal.core.container import AppContainer

UNAUTHORIZED_MESSAGE = "Unauthorized. Send Authorization: Bearer <token> or ?token=..."


def get_container(request: Request) -> AppContainer:
    return request.app.state.container  # type: ignore[return-value]


def _presented_tokens(request: Request) -> list[str]:
    auth = request.headers.get("authorization", "")
    bearer = auth[len("Bearer "):] if auth.startswith("Bearer ") else ""
    return [
        bearer,
        request.headers.get("x-portal-token", ""),
        request.query_params.get("token", ""),
    ]


def require_token(request: Request, container: AppContainer = Depends(get_container)) -> None:
    """Reject the request unless it presents the configured token (no-op when unset)."""
    expected = container.settings.api_token
    if not expected:
        return
    for candidate in _presented_tokens(request):
        if candidate and hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8")):
            return
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=UNAUTHORIZED_MESSAGE)
