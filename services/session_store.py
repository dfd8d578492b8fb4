"""Session store: the single writer of the bearer token.

Constructed once when the client starts and torn down by logout(). Every
other component reads the token through current_token() and learns about
changes through subscribe(); listeners run synchronously on the event loop
thread, so readers never observe a half-updated session.
"""

from typing import Callable, List, Optional

from pydantic import ValidationError as PydanticValidationError

from errors import AuthError, ValidationError
from infrastructure.api_client import ShortenerApiClient
from schemas.dto.requests.auth import LoginRequest, RegisterRequest
from schemas.models.session import ANONYMOUS_SESSION, Identity, Session
from shared.logging import get_logger

log = get_logger(__name__)

TokenListener = Callable[[Optional[str]], None]


class SessionStore:
    def __init__(self, api: ShortenerApiClient) -> None:
        self._api = api
        self._session: Session = ANONYMOUS_SESSION
        self._listeners: List[TokenListener] = []

    @property
    def session(self) -> Session:
        return self._session

    @property
    def identity(self) -> Optional[Identity]:
        return self._session.identity

    def current_token(self) -> Optional[str]:
        return self._session.token

    def subscribe(self, listener: TokenListener) -> Callable[[], None]:
        """Register a token-change listener. Returns the unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _replace(self, session: Session) -> None:
        previous_token = self._session.token
        self._session = session
        if session.token == previous_token:
            return
        for listener in list(self._listeners):
            listener(session.token)

    async def login(self, username: str, password: str) -> str:
        """Sign in and validate the new token against "who am I".

        The token is published only after the identity lookup succeeds.

        Raises:
            AuthError: Credentials rejected or the token could not be
                validated. The session is left cleared.
            FetchError: The login endpoint could not be reached.
        """
        self._replace(ANONYMOUS_SESSION)
        try:
            request = LoginRequest(username=username, password=password)
        except PydanticValidationError as e:
            raise AuthError("Username and password are required") from e
        token = await self._api.login(request)
        try:
            identity = await self._api.me(token)
        except AuthError:
            log.warning("login_identity_lookup_failed", username=username)
            raise

        self._replace(Session(token=token, identity=identity))
        log.info("user_signed_in", username=identity.username)
        return token

    async def register(
        self, username: str, password: str, display_name: Optional[str] = None
    ) -> None:
        """Create an account. Does not sign in.

        Raises:
            ConflictError: The username is taken.
        """
        try:
            request = RegisterRequest(
                username=username,
                password=password,
                display_name=display_name or None,
            )
        except PydanticValidationError as e:
            raise ValidationError(
                "Username and password are required", details=e.errors()
            ) from e
        await self._api.register(request)
        log.info("user_registered", username=username)

    async def reload_identity(self) -> Optional[Identity]:
        """Re-run "who am I" for the held token.

        Returns None when the token was replaced while the lookup was in
        flight; that response is dropped and the newer session is kept.

        Raises:
            AuthError: The current token was rejected. The session is expired.
        """
        token = self.current_token()
        if token is None:
            raise AuthError("Not signed in")
        try:
            identity = await self._api.me(token)
        except AuthError:
            if self.current_token() != token:
                log.debug("identity_response_discarded")
                return None
            self.expire("identity_lookup_failed")
            raise
        if self.current_token() != token:
            log.debug("identity_response_discarded")
            return None
        self._replace(Session(token=token, identity=identity))
        return identity

    def logout(self) -> None:
        if self._session.token is not None:
            log.info("user_signed_out")
        self._replace(ANONYMOUS_SESSION)

    def expire(self, reason: str) -> None:
        """Drop a token the server no longer accepts."""
        if self._session.token is None:
            return
        log.warning("session_expired", reason=reason)
        self._replace(ANONYMOUS_SESSION)
