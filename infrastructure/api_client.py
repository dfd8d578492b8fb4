"""Client for the URL-shortener REST API.

Every call goes through HttpClient and maps the response onto the client
error hierarchy:

- 401 / 403                        → AuthError
- 409                              → ConflictError
- 400 / 422                        → ValidationError
- other non-2xx, transport errors,
  timeouts, undecodable payloads   → FetchError

Bearer tokens and passwords are never logged.
"""

from datetime import datetime
from typing import Any, List, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError as PydanticValidationError

from errors import AppError, AuthError, ConflictError, FetchError, ValidationError
from infrastructure.http_client import HttpClient
from schemas.dto.requests.auth import LoginRequest, RegisterRequest
from schemas.dto.requests.url import CreateLinkRequest
from schemas.dto.responses.auth import TokenResponse
from schemas.models.link import ShortLink
from schemas.models.session import Identity
from shared.datetime_utils import parse_datetime
from shared.logging import get_logger

log = get_logger(__name__)


def _auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _error_detail(response: httpx.Response) -> Optional[Any]:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or None
    if isinstance(body, dict):
        return body.get("detail", body.get("error"))
    return body


def raise_for_status(response: httpx.Response, endpoint: str) -> None:
    """Raise the AppError matching a non-2xx response."""
    status = response.status_code
    if 200 <= status < 300:
        return

    detail = _error_detail(response)
    log.warning("api_request_rejected", endpoint=endpoint, status_code=status)

    if status in (401, 403):
        raise AuthError("Authentication failed", details=detail)
    if status == 409:
        raise ConflictError("Resource already exists", details=detail)
    if status in (400, 422):
        raise ValidationError("Request rejected by server", details=detail)
    raise FetchError(
        f"{endpoint} returned HTTP {status}", upstream_status=status, details=detail
    )


class ShortenerApiClient:
    def __init__(self, http_client: HttpClient) -> None:
        self._http = http_client

    async def _send(
        self, method: str, path: str, endpoint: str, **kwargs: Any
    ) -> httpx.Response:
        send = self._http.get if method == "GET" else self._http.post
        try:
            response = await send(path, **kwargs)
        except httpx.TimeoutException as e:
            log.warning("api_request_timeout", endpoint=endpoint)
            raise FetchError(f"{endpoint} timed out") from e
        except httpx.HTTPError as e:
            log.warning(
                "api_request_failed",
                endpoint=endpoint,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise FetchError(f"{endpoint} is unreachable") from e

        log.debug("api_response", endpoint=endpoint, status_code=response.status_code)
        raise_for_status(response, endpoint)
        return response

    @staticmethod
    def _json(response: httpx.Response, endpoint: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            log.warning("api_response_not_json", endpoint=endpoint)
            raise FetchError(f"{endpoint} returned a malformed payload") from e

    # ── Auth ──────────────────────────────────────────────────────────────

    async def login(self, request: LoginRequest) -> str:
        """Exchange credentials for a bearer token.

        Raises:
            AuthError: The server rejected the credentials or answered with
                an unusable payload.
            FetchError: The server could not be reached.
        """
        try:
            response = await self._send(
                "POST", "/login", "login", data=request.model_dump()
            )
        except ValidationError as e:
            # Malformed credentials are reported like wrong ones
            raise AuthError("Login failed") from e
        try:
            return TokenResponse.model_validate(
                self._json(response, "login")
            ).access_token
        except (PydanticValidationError, FetchError) as e:
            raise AuthError("Login response carried no token") from e

    async def register(self, request: RegisterRequest) -> None:
        """Create an account.

        The API answers a taken username with 400 or 409; both surface as
        ConflictError.
        """
        try:
            await self._send(
                "POST",
                "/register",
                "register",
                json=request.model_dump(by_alias=True),
            )
        except ValidationError as e:
            if isinstance(e, ConflictError):
                raise
            raise ConflictError("Username already exists", details=e.details) from e

    async def me(self, token: str) -> Identity:
        """Resolve the identity behind a token.

        Every failure, including transport errors, is an AuthError: a token
        that cannot be validated is not usable.
        """
        try:
            response = await self._send(
                "GET", "/me", "me", headers=_auth_headers(token)
            )
            return Identity.model_validate(self._json(response, "me"))
        except AuthError:
            raise
        except (AppError, PydanticValidationError) as e:
            raise AuthError("Could not load user data") from e

    # ── Links ─────────────────────────────────────────────────────────────

    async def list_links(self, token: str) -> List[ShortLink]:
        response = await self._send(
            "GET", "/me/urls", "list_links", headers=_auth_headers(token)
        )
        payload = self._json(response, "list_links")
        if not isinstance(payload, list):
            raise FetchError("list_links returned a malformed payload")
        try:
            return [ShortLink.model_validate(item) for item in payload]
        except PydanticValidationError as e:
            raise FetchError(
                "list_links returned a malformed payload", details=e.errors()
            ) from e

    async def create_link(
        self, token: str, request: CreateLinkRequest
    ) -> Optional[ShortLink]:
        """Shorten a URL. Returns the new link when the server echoes it."""
        response = await self._send(
            "POST",
            "/me/urls",
            "create_link",
            headers=_auth_headers(token),
            json=request.model_dump(),
        )
        if not response.content:
            return None
        try:
            return ShortLink.model_validate(response.json())
        except (ValueError, PydanticValidationError):
            log.debug("create_link_response_not_a_link")
            return None

    async def list_redirects(self, token: str, code: str) -> List[datetime]:
        """Fetch the click history of one link as UTC datetimes."""
        response = await self._send(
            "GET",
            f"/me/links/{quote(code, safe='')}/redirects",
            "list_redirects",
            headers=_auth_headers(token),
        )
        payload = self._json(response, "list_redirects")
        if not isinstance(payload, list):
            raise FetchError("list_redirects returned a malformed payload")

        timestamps = []
        for value in payload:
            parsed = parse_datetime(value)
            if parsed is None:
                log.warning("click_timestamp_unparseable", short_code=code)
                raise FetchError(
                    "list_redirects returned an unparseable timestamp",
                    details={"value": str(value)[:64]},
                )
            timestamps.append(parsed)
        return timestamps
