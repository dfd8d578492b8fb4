"""Link repository: the signed-in user's short links.

Links are replaced wholesale on every refresh; there is no partial merge,
caching across sessions, or pagination. A refresh that lands after the token
changed, or after a newer refresh started, is dropped.
"""

from typing import Callable, List, Optional

from pydantic import ValidationError as PydanticValidationError

from errors import FetchError, ValidationError
from infrastructure.api_client import ShortenerApiClient
from schemas.dto.requests.url import CreateLinkRequest
from schemas.models.link import ShortLink
from shared.logging import get_logger

log = get_logger(__name__)

LIST_FAILED_MESSAGE = "Could not fetch URLs"


class LinkRepository:
    def __init__(
        self,
        api: ShortenerApiClient,
        current_token: Callable[[], Optional[str]],
    ) -> None:
        self._api = api
        self._current_token = current_token
        self._seq = 0
        self.links: List[ShortLink] = []
        self.loading = False
        self.error: Optional[str] = None

    async def list_links(self, token: str) -> List[ShortLink]:
        return await self._api.list_links(token)

    async def create_link(self, token: str, long_url: str) -> Optional[ShortLink]:
        """Shorten *long_url*.

        Raises:
            ValidationError: The URL is malformed (checked before any request)
                or the server rejected it.
            FetchError: The server could not be reached.
        """
        try:
            request = CreateLinkRequest(url=long_url)
        except PydanticValidationError as e:
            raise ValidationError(
                "Enter a valid http(s) URL", field="url", details=e.errors()
            ) from e
        link = await self._api.create_link(token, request)
        log.info("link_created", short_code=link.code if link else None)
        return link

    async def refresh(self) -> List[ShortLink]:
        """Reload all links for the current token.

        On FetchError the previous links stay and ``error`` carries the
        inline message. AuthError propagates so the caller can expire the
        session.
        """
        token = self._current_token()
        self._seq += 1
        seq = self._seq
        if token is None:
            self.clear()
            return self.links

        self.loading = True
        try:
            links = await self.list_links(token)
        except FetchError as e:
            if seq == self._seq:
                log.warning("links_fetch_failed", error=e.message)
                self.error = LIST_FAILED_MESSAGE
            return self.links
        finally:
            if seq == self._seq:
                self.loading = False

        if seq != self._seq or self._current_token() != token:
            log.debug("links_response_discarded", seq=seq)
            return self.links

        self.links = links
        self.error = None
        log.info("links_loaded", count=len(links))
        return links

    def get(self, code: str) -> Optional[ShortLink]:
        return next((link for link in self.links if link.code == code), None)

    def clear(self) -> None:
        self._seq += 1
        self.links = []
        self.error = None
        self.loading = False
