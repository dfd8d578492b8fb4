"""
Client application factory.
create_app() is the single entry point for building the client.

ShortenerClient holds the screen handlers (sign in, sign up, sign out,
shorten, open) and owns one AnalyticsRefreshController per listed link.
Handlers never raise I/O failures; they record a user-facing message in
``error_message`` instead.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import httpx

from config import ClientSettings
from errors import AuthError, ConflictError, FetchError, ValidationError
from infrastructure.api_client import ShortenerApiClient
from infrastructure.chart.protocol import ChartRenderer
from infrastructure.chart.text import TextChartRenderer
from infrastructure.http_client import HttpClient
from schemas.models.link import ShortLink
from services.analytics_controller import AnalyticsRefreshController
from services.link_repository import LinkRepository
from services.session_store import SessionStore
from services.view_router import View, ViewRouter
from shared.logging import get_logger, setup_logging
from shared.time_bucket_utils import Granularity

log = get_logger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid credentials. Please try again."
USERNAME_TAKEN_MESSAGE = "Username already exists."
SIGNUP_FAILED_MESSAGE = "Sign up failed. Please try again."
USER_DATA_FAILED_MESSAGE = "Failed to load user data"
SHORTEN_FAILED_MESSAGE = "URL shortening failed"


class ShortenerClient:
    def __init__(
        self,
        settings: ClientSettings,
        http_client: HttpClient,
        api: ShortenerApiClient,
        session: SessionStore,
        links: LinkRepository,
        router: ViewRouter,
        renderer: Optional[ChartRenderer] = None,
    ) -> None:
        self.settings = settings
        self.api = api
        self.session = session
        self.links = links
        self.router = router
        self.renderer = renderer
        self.controllers: Dict[str, AnalyticsRefreshController] = {}
        self.error_message: Optional[str] = None
        self.processing = False
        self._http = http_client
        self._unsubscribe = session.subscribe(self._on_token_changed)

    @property
    def view(self) -> View:
        return self.router.current

    def short_url(self, code: str) -> str:
        return f"{self.settings.redirect_base_url}/{code}"

    # ── Session ───────────────────────────────────────────────────────────

    async def sign_in(self, username: str, password: str) -> bool:
        self.processing = True
        try:
            await self.session.login(username, password)
        except (AuthError, FetchError) as e:
            log.info("sign_in_failed", error_code=e.error_code)
            self.error_message = INVALID_CREDENTIALS_MESSAGE
            return False
        finally:
            self.processing = False

        self.error_message = None
        self.router.signed_in()
        await self.load_links()
        return True

    async def sign_up(
        self, username: str, password: str, display_name: Optional[str] = None
    ) -> bool:
        if self.view != View.SIGNUP:
            log.info("sign_up_refused", view=self.view.value)
            self.error_message = SIGNUP_FAILED_MESSAGE
            return False

        self.processing = True
        try:
            await self.session.register(username, password, display_name)
        except ConflictError:
            self.error_message = USERNAME_TAKEN_MESSAGE
            return False
        except ValidationError as e:
            self.error_message = e.message
            return False
        except FetchError as e:
            log.warning("sign_up_failed", error=e.message)
            self.error_message = SIGNUP_FAILED_MESSAGE
            return False
        finally:
            self.processing = False

        self.error_message = None
        self.router.registered()
        return True

    def sign_out(self) -> None:
        self.session.logout()

    async def reload_user(self) -> bool:
        """Re-validate the held token; a rejection signs the user out."""
        try:
            identity = await self.session.reload_identity()
        except AuthError:
            self.error_message = USER_DATA_FAILED_MESSAGE
            return False
        return identity is not None

    def _on_token_changed(self, token: Optional[str]) -> None:
        if token is None:
            self._teardown()

    def _teardown(self) -> None:
        for controller in self.controllers.values():
            controller.unmount()
        self.controllers.clear()
        self.links.clear()
        self.router.signed_out()

    # ── Links ─────────────────────────────────────────────────────────────

    async def load_links(self) -> None:
        self.processing = True
        try:
            await self.links.refresh()
        except AuthError:
            self.session.expire("link_list_rejected")
            return
        finally:
            self.processing = False

        if self.links.error:
            self.error_message = self.links.error
        if self.session.current_token() is not None:
            await self._sync_controllers()

    async def _sync_controllers(self) -> None:
        codes = {link.code for link in self.links.links}
        for code in list(self.controllers):
            if code not in codes:
                self.controllers.pop(code).unmount()

        fresh = []
        for link in self.links.links:
            if link.code in self.controllers:
                continue
            controller = AnalyticsRefreshController(
                link.code,
                self.session,
                self.api,
                renderer=self.renderer,
                tz=self.settings.display_tz(),
            )
            self.controllers[link.code] = controller
            fresh.append(controller)
        if fresh:
            await asyncio.gather(*(controller.mount() for controller in fresh))

    async def shorten_url(self, long_url: str) -> Optional[ShortLink]:
        token = self.session.current_token()
        if token is None:
            self.error_message = SHORTEN_FAILED_MESSAGE
            return None

        self.processing = True
        try:
            link = await self.links.create_link(token, long_url)
        except ValidationError as e:
            self.error_message = e.message
            return None
        except AuthError:
            self.session.expire("create_link_rejected")
            return None
        except FetchError as e:
            log.warning("shorten_failed", error=e.message)
            self.error_message = SHORTEN_FAILED_MESSAGE
            return None
        finally:
            self.processing = False

        self.error_message = None
        await self.load_links()
        return link

    async def open_link(self, code: str) -> str:
        """Return the public short URL and refresh counts once the redirect lands."""
        url = self.short_url(code)
        await asyncio.sleep(self.settings.open_link_refresh_delay)
        await self.load_links()
        controller = self.controllers.get(code)
        if controller is not None:
            await controller.refresh()
        return url

    # ── Analytics ─────────────────────────────────────────────────────────

    async def set_granularity(self, code: str, granularity: Granularity) -> None:
        controller = self.controllers.get(code)
        if controller is None:
            raise KeyError(code)
        await controller.set_granularity(granularity)

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def aclose(self) -> None:
        self._unsubscribe()
        for controller in self.controllers.values():
            controller.unmount()
        self.controllers.clear()
        await self._http.aclose()

    async def __aenter__(self) -> "ShortenerClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()


def create_app(
    settings: Optional[ClientSettings] = None,
    renderer: Optional[ChartRenderer] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ShortenerClient:
    """Create and return a fully wired client."""
    if settings is None:
        settings = ClientSettings()

    setup_logging(settings.logging)

    http_client = HttpClient(
        timeout=settings.request_timeout,
        base_url=settings.api_base_url,
        transport=transport,
    )
    api = ShortenerApiClient(http_client)
    session = SessionStore(api)
    links = LinkRepository(api, session.current_token)

    return ShortenerClient(
        settings=settings,
        http_client=http_client,
        api=api,
        session=session,
        links=links,
        router=ViewRouter(),
        renderer=renderer if renderer is not None else TextChartRenderer(),
    )
