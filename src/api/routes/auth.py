"""Sign-in endpoints for the implicit grant redirect flow."""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import RedirectResponse

from api.dependencies import get_auth, get_scheduler
from api.models.responses import CallbackRequest, ErrorCodes, SessionResponse
from core.errors import AuthorizationError, ProtocolError
from services.auth import AuthFlowController
from services.refresh import RefreshScheduler

router = APIRouter(prefix="/auth")


def session_response(auth: AuthFlowController) -> SessionResponse:
    return SessionResponse(
        state=auth.state.value,
        signed_in=auth.is_signed_in,
        expiry=auth.store.get_expiry() if auth.is_signed_in else None,
        error=auth.error,
    )


@router.get("/login")
async def login(auth: AuthFlowController = Depends(get_auth)):
    """Redirect the browser to the Google consent screen."""
    return RedirectResponse(auth.initiate(), status_code=status.HTTP_307_TEMPORARY_REDIRECT)


@router.post("/callback", response_model=SessionResponse)
async def callback(
    body: CallbackRequest,
    auth: AuthFlowController = Depends(get_auth),
    scheduler: RefreshScheduler = Depends(get_scheduler),
):
    """
    Accept the redirect's URL fragment, forwarded by the browser.

    On success the first aggregation pass is started in the background.
    """
    try:
        auth.handle_callback(body.fragment)
    except AuthorizationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": str(e),
                "code": ErrorCodes.INVALID_CALLBACK,
                "details": [],
            },
        )
    except ProtocolError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": auth.error or "Please sign in again",
                "code": ErrorCodes.INVALID_CALLBACK,
                "details": [str(e)],
            },
        )

    scheduler.request_pass()
    return session_response(auth)


@router.post("/signout", response_model=SessionResponse)
async def signout(auth: AuthFlowController = Depends(get_auth)):
    auth.sign_out()
    return session_response(auth)


@router.get("/session", response_model=SessionResponse)
async def session(auth: AuthFlowController = Depends(get_auth)):
    return session_response(auth)
