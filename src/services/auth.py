"""
Google OAuth 2.0 sign-in using the implicit grant redirect flow.

Implicit grant tokens cannot be refreshed. Once the calendar API rejects a
token, the only way back is another redirect. The stored token is reused
until the API actually rejects it, unless strict expiry is switched on.
"""

import logging
import secrets
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from urllib.parse import parse_qs, urlencode, urlsplit

from core.config import AUTH_ENDPOINT, CALENDAR_SCOPE
from core.errors import AuthorizationError, ProtocolError
from services.token_store import TokenStore, utc_now

logger = logging.getLogger(__name__)

SESSION_EXPIRED_MESSAGE = "Session expired. Please sign in again."
INVALID_CALLBACK_MESSAGE = "Invalid sign-in response. Please sign in again."


class AuthState(str, Enum):
    SIGNED_OUT = "signed_out"
    REDIRECTING = "redirecting"
    PENDING_CALLBACK = "pending_callback"
    SIGNED_IN = "signed_in"
    EXPIRED = "expired"


def generate_state() -> str:
    """Random hex string for CSRF protection."""
    return secrets.token_hex(32)


def parse_callback_params(callback: str) -> dict[str, str]:
    """
    Parse the parameters the provider returned.

    Accepts a full redirect URL, a '#fragment', a '?query' or a bare
    'a=b&c=d' string. The fragment wins when both are present.
    """
    callback = callback.strip()
    if "://" in callback:
        parts = urlsplit(callback)
        callback = parts.fragment or parts.query
    callback = callback.lstrip("#?")
    return {key: values[0] for key, values in parse_qs(callback).items()}


class AuthFlowController:
    """
    Sign-in state machine around a TokenStore.

    SIGNED_OUT -> REDIRECTING -> (PENDING_CALLBACK) -> SIGNED_IN -> EXPIRED -> SIGNED_OUT
    """

    def __init__(
        self,
        store: TokenStore,
        client_id: str,
        redirect_uri: str,
        *,
        on_session_invalidated: Callable[[str], None] | None = None,
        strict_expiry: bool = False,
        expiry_buffer_seconds: int = 60,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.client_id = client_id
        self.redirect_uri = redirect_uri
        self.on_session_invalidated = on_session_invalidated
        self.strict_expiry = strict_expiry
        self.expiry_buffer_seconds = expiry_buffer_seconds
        self.clock = clock
        self.state = AuthState.SIGNED_OUT
        self.error: str | None = None

    @property
    def is_signed_in(self) -> bool:
        return self.state is AuthState.SIGNED_IN

    @property
    def token(self) -> str | None:
        """Token the engine may fetch with, or None when not signed in."""
        if not self.is_signed_in:
            return None
        if self._locally_expired():
            self.invalidate()
            return None
        return self.store.get_token()

    def _locally_expired(self) -> bool:
        return self.strict_expiry and self.store.is_token_expired(
            self.clock(), self.expiry_buffer_seconds
        )

    def resume(self) -> AuthState:
        """Restore the session at startup from persisted state. No network."""
        if self.store.get_token():
            self.state = AuthState.SIGNED_IN
            if self._locally_expired():
                self.invalidate()
        elif self.store.has_pending_state():
            self.state = AuthState.PENDING_CALLBACK
        else:
            self.state = AuthState.SIGNED_OUT
        return self.state

    def initiate(self) -> str:
        """Start sign-in: persist a fresh state value and return the provider URL."""
        state = generate_state()
        self.store.save_state(state)
        self.state = AuthState.REDIRECTING
        self.error = None

        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "token",
            "scope": CALENDAR_SCOPE,
            "state": state,
            "include_granted_scopes": "true",
        }
        return f"{AUTH_ENDPOINT}?{urlencode(params)}"

    def handle_callback(self, callback: str) -> AuthState:
        """
        Validate the redirect callback and store the credential.

        The pending state value is consumed whatever the outcome. A callback
        with no sign-in in progress is rejected and leaves the session as is.

        Raises:
            AuthorizationError: the provider reported an error.
            ProtocolError: missing fields or the state does not match.
        """
        expected_state = self.store.pop_state()
        if expected_state is None:
            logger.warning("Ignoring sign-in callback with no sign-in in progress")
            raise ProtocolError("No sign-in in progress. Please try signing in again.")

        params = parse_callback_params(callback)

        error = params.get("error")
        if error:
            message = params.get("error_description") or error
            self._fail(message)
            raise AuthorizationError(message)

        token = params.get("access_token")
        expires_in = params.get("expires_in")
        state = params.get("state")

        if not token or not expires_in or not expires_in.isdigit():
            self._fail(INVALID_CALLBACK_MESSAGE)
            raise ProtocolError("Callback is missing the access token or its lifetime")

        if not secrets.compare_digest(state or "", expected_state):
            self._fail(INVALID_CALLBACK_MESSAGE)
            raise ProtocolError("Invalid state parameter. Please try signing in again.")

        self.store.save_token(token, int(expires_in), self.clock())
        self.state = AuthState.SIGNED_IN
        self.error = None
        logger.info("Signed in; token valid for %s seconds", expires_in)
        return self.state

    def _fail(self, message: str):
        self.store.clear_token()
        self.state = AuthState.SIGNED_OUT
        self.error = message
        logger.warning("Sign-in callback rejected: %s", message)

    def invalidate(self, message: str = SESSION_EXPIRED_MESSAGE) -> AuthState:
        """The remote service rejected the token: clear it and sign out."""
        self.state = AuthState.EXPIRED
        self.store.clear_token()
        self.state = AuthState.SIGNED_OUT
        self.error = message
        logger.warning("Session invalidated: %s", message)
        if self.on_session_invalidated is not None:
            self.on_session_invalidated(message)
        return self.state

    def sign_out(self) -> AuthState:
        """Clear everything. Safe to call when already signed out."""
        self.store.clear()
        self.state = AuthState.SIGNED_OUT
        self.error = None
        return self.state
