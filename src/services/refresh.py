"""
Navigation state, aggregation passes and the periodic silent refresh.
"""

import asyncio
import logging
from datetime import date, tzinfo

import httpx

from core.config import DEFAULT_COLORS, MAX_RESULTS, REFRESH_INTERVAL_SECONDS
from core.errors import SessionInvalidated
from models.events import Column, ColumnConfig, DateRange, DisplaySettings, ViewMode
from services.aggregation import aggregate, filter_tentative
from services.auth import AuthFlowController
from services.dates import UTC, range_for, step

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """
    Owns the published column list and decides when a pass runs.

    Passes run when the date range changes, when sign-in completes, on
    request, and every `interval` seconds. Each pass is numbered; a pass
    that finishes after a newer one has published is discarded.
    """

    def __init__(
        self,
        columns_config: list[ColumnConfig],
        auth: AuthFlowController,
        *,
        client: httpx.AsyncClient,
        display: DisplaySettings | None = None,
        tz: tzinfo = UTC,
        today: date | None = None,
        palette: list[str] | None = None,
        interval: float = REFRESH_INTERVAL_SECONDS,
        max_results: int = MAX_RESULTS,
    ):
        display = display or DisplaySettings()
        self.display = display
        self.columns_config = list(columns_config)
        self.auth = auth
        self.client = client
        self.tz = tz
        self.palette = palette or DEFAULT_COLORS
        self.interval = interval
        self.max_results = max_results

        self.anchor = today or date.today()
        self.view_mode = display.default_view
        self.show_tentative = display.show_tentative
        self.columns: list[Column] = [Column(name=c.name) for c in self.columns_config]
        self.is_refreshing = False

        self._next_sequence = 0
        self._published_sequence = 0
        self._timer: asyncio.Task | None = None
        self._pending: set[asyncio.Task] = set()

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    @property
    def date_range(self) -> DateRange:
        return range_for(self.anchor, self.view_mode, self.tz)

    def _navigate(self, anchor: date, view_mode: ViewMode) -> bool:
        before = self.date_range
        self.anchor = anchor
        self.view_mode = view_mode
        changed = self.date_range != before
        if changed:
            self.request_pass()
        return changed

    def set_view_mode(self, view_mode: ViewMode | str) -> bool:
        return self._navigate(self.anchor, ViewMode(view_mode))

    def set_anchor(self, anchor: date) -> bool:
        return self._navigate(anchor, self.view_mode)

    def go_previous(self) -> bool:
        return self._navigate(step(self.anchor, self.view_mode, -1, self.tz), self.view_mode)

    def go_next(self) -> bool:
        return self._navigate(step(self.anchor, self.view_mode, 1, self.tz), self.view_mode)

    def go_today(self, today: date | None = None) -> bool:
        return self._navigate(today or date.today(), self.view_mode)

    def toggle_tentative(self) -> bool:
        self.show_tentative = not self.show_tentative
        return self.show_tentative

    def visible_columns(self) -> list[Column]:
        """Published columns with the tentative filter applied."""
        return filter_tentative(self.columns, self.show_tentative)

    # -------------------------------------------------------------------------
    # Passes
    # -------------------------------------------------------------------------

    async def run_pass(self, silent: bool = False) -> bool:
        """
        Aggregate all columns for the current range.

        Returns True if this pass published its results. A pass that ends
        after a newer pass has published changes nothing, and a token
        rejection only signs out while the rejected token is still current.
        """
        token = self.auth.token
        if token is None:
            return False

        self._next_sequence += 1
        sequence = self._next_sequence
        date_range = self.date_range
        previous = self.columns

        if silent:
            self.is_refreshing = True
        else:
            self.columns = [c.with_changes(is_loading=True, error=None) for c in previous]

        try:
            fresh = await aggregate(
                self.columns_config,
                token,
                date_range,
                previous,
                client=self.client,
                palette=self.palette,
                tz=self.tz,
                max_results=self.max_results,
            )
        except SessionInvalidated as e:
            if token != self.auth.store.get_token() or sequence < self._published_sequence:
                logger.info("Ignoring token rejection from stale pass %d", sequence)
                return False
            self.auth.invalidate()
            logger.warning("Pass %d rejected: %s", sequence, e.message)
            return False
        finally:
            if sequence == self._next_sequence:
                self.columns = [
                    c.with_changes(is_loading=False) if c.is_loading else c for c in self.columns
                ]
                self.is_refreshing = False

        if sequence < self._published_sequence:
            logger.info(
                "Discarding stale pass %d (pass %d already published)",
                sequence,
                self._published_sequence,
            )
            return False

        self._published_sequence = sequence
        self.columns = fresh
        self.is_refreshing = False
        logger.info(
            "Published pass %d: %d events across %d columns",
            sequence,
            sum(len(c.events) for c in fresh),
            len(fresh),
        )
        return True

    def request_pass(self, silent: bool = False) -> asyncio.Task | None:
        """Schedule a pass in the background if an event loop is running."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return None
        task = loop.create_task(self.run_pass(silent=silent))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _periodic(self):
        while True:
            await asyncio.sleep(self.interval)
            if not self.auth.is_signed_in:
                continue
            try:
                await self.run_pass(silent=True)
            except Exception:
                logger.exception("Periodic refresh failed")

    def start(self):
        """Start the periodic silent refresh."""
        if self._timer is None or self._timer.done():
            self._timer = asyncio.get_running_loop().create_task(self._periodic())

    async def stop(self):
        """Stop the timer and wait for in-flight passes to finish."""
        if self._timer is not None:
            self._timer.cancel()
            try:
                await self._timer
            except asyncio.CancelledError:
                pass
            self._timer = None
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
