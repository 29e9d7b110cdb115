"""FastAPI dependencies for the sign-in session and shared engine objects."""

from fastapi import Depends, HTTPException, Request, status

from api.models.responses import ErrorCodes
from services.auth import AuthFlowController
from services.refresh import RefreshScheduler


def get_auth(request: Request) -> AuthFlowController:
    """The process's sign-in controller, created in the app lifespan."""
    return request.app.state.auth


def get_scheduler(request: Request) -> RefreshScheduler:
    """The process's refresh scheduler, created in the app lifespan."""
    return request.app.state.scheduler


async def require_signed_in(auth: AuthFlowController = Depends(get_auth)) -> AuthFlowController:
    """
    Require a signed-in session.

    Raises:
        HTTPException: 401 if not signed in (with the session-expired message
            when the last session was invalidated)
    """
    if auth.token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": auth.error or "Not signed in",
                "code": ErrorCodes.SESSION_EXPIRED if auth.error else ErrorCodes.UNAUTHORIZED,
                "details": [],
            },
        )
    return auth
