"""Per-link analytics refresh controller.

Owns the fetch → aggregate → render cycle for one short link. Runs on a
single asyncio event loop; every fetch is a suspension point, so several
refreshes of the same link can be in flight at once.

Ordering: each trigger (mount, refresh, granularity change, token change)
takes the next request sequence number. A fetch result is applied only if
its sequence number is still the latest and the session still holds the
token it was fetched with. Superseded results are dropped without being
reported as failures.

The last fetched timestamps are kept together with the token that fetched
them. Switching granularity re-aggregates that cache instead of fetching
again while the token is unchanged; token changes always re-fetch.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Coroutine, List, Optional, Set

from errors import AuthError, FetchError
from infrastructure.api_client import ShortenerApiClient
from infrastructure.chart.protocol import ChartRenderer
from schemas.models.analytics import TimeBucket
from services.session_store import SessionStore
from shared.logging import get_logger, log_with_context
from shared.time_bucket_utils import Granularity, aggregate_clicks, to_chart_points

log = get_logger(__name__)


@dataclass
class AnalyticsState:
    granularity: Granularity = Granularity.MINUTE
    buckets: List[TimeBucket] = field(default_factory=list)
    loading: bool = False


class AnalyticsRefreshController:
    def __init__(
        self,
        code: str,
        session: SessionStore,
        api: ShortenerApiClient,
        renderer: Optional[ChartRenderer] = None,
        tz: Optional[tzinfo] = None,
    ) -> None:
        self.code = code
        self.state = AnalyticsState()
        self._session = session
        self._api = api
        self._renderer = renderer
        self._tz = tz
        self._seq = 0
        self._raw: Optional[List[datetime]] = None
        self._raw_token: Optional[str] = None
        self._unsubscribe = None
        self._tasks: Set[asyncio.Task] = set()
        self._log = log_with_context(log, short_code=code)

    @property
    def latest_seq(self) -> int:
        return self._seq

    @property
    def mounted(self) -> bool:
        return self._unsubscribe is not None

    def _next_seq(self) -> int:
        self._seq += 1
        return self._seq

    def _is_current(self, seq: int, token: str) -> bool:
        return seq == self._seq and self._session.current_token() == token

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def mount(self) -> None:
        """Start following the session and load the chart."""
        if self._unsubscribe is None:
            self._unsubscribe = self._session.subscribe(self._on_token_changed)
        await self.refresh()

    def unmount(self) -> None:
        """Stop following the session; in-flight results will be dropped."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._next_seq()
        self.state.loading = False

    async def settle(self) -> None:
        """Wait for refreshes scheduled by token changes to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    # ── Triggers ──────────────────────────────────────────────────────────

    async def refresh(self) -> None:
        """Fetch the click history and rebuild the buckets.

        Failures keep the previous buckets on screen; analytics are best
        effort and never raise to the caller.
        """
        seq = self._next_seq()
        token = self._session.current_token()
        if token is None:
            self._clear()
            return

        self.state.loading = True
        try:
            timestamps = await self._api.list_redirects(token, self.code)
        except AuthError:
            if self._is_current(seq, token):
                self._log.warning("analytics_auth_rejected", seq=seq)
                self._session.expire("click_history_rejected")
            return
        except FetchError as e:
            if self._is_current(seq, token):
                self._log.warning("analytics_fetch_failed", seq=seq, error=e.message)
            return
        finally:
            if seq == self._seq:
                self.state.loading = False

        if not self._is_current(seq, token):
            self._log.debug(
                "analytics_response_discarded", seq=seq, latest_seq=self._seq
            )
            return

        self._raw = timestamps
        self._raw_token = token
        self._apply(aggregate_clicks(timestamps, self.state.granularity, self._tz))
        self._log.debug(
            "analytics_refreshed",
            seq=seq,
            granularity=self.state.granularity.value,
            clicks=len(timestamps),
            buckets=len(self.state.buckets),
        )

    async def set_granularity(self, granularity: Granularity) -> None:
        if granularity == self.state.granularity:
            return
        self.state.granularity = granularity

        token = self._session.current_token()
        if self._raw is not None and token is not None and self._raw_token == token:
            self._next_seq()
            self.state.loading = False
            self._apply(aggregate_clicks(self._raw, granularity, self._tz))
            return

        self.state.buckets = []
        await self.refresh()

    def _on_token_changed(self, token: Optional[str]) -> None:
        self._raw = None
        self._raw_token = None
        if token is None:
            self._clear()
            return
        self._next_seq()
        self._schedule(self._refresh_if_mounted())

    # ── Internals ─────────────────────────────────────────────────────────

    async def _refresh_if_mounted(self) -> None:
        if self.mounted:
            await self.refresh()

    def _schedule(self, coro: Coroutine) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _clear(self) -> None:
        self._next_seq()
        self._raw = None
        self._raw_token = None
        self.state.loading = False
        self._apply([])

    def _apply(self, buckets: List[TimeBucket]) -> None:
        self.state.buckets = buckets
        if self._renderer is not None:
            self._renderer.render(self.code, to_chart_points(buckets))
