import asyncio
import logging
from collections.abc import Callable
from datetime import date, datetime
from typing import TYPE_CHECKING, Protocol

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from config import Settings
from core.dedup import DedupMemory
from core.errors import DeliveryError, FetchError
from core.models import Kept, TickReport, TickState, TickStatus
from core.notifier import ChannelNotifier
from core.pipeline import process_entries
from core.scanner import DMsGuildClient, extract_rows

if TYPE_CHECKING:
    from bot.main import DMsGuildBot

log = logging.getLogger(__name__)

SEARCH_JOB_ID = "dmsguild_search"


class SearchClient(Protocol):
    async def search(self, keywords: str) -> str: ...

    async def close(self) -> None: ...


class MessageSender(Protocol):
    async def send(self, message: str) -> None: ...


class WatcherCog:
    def __init__(
        self,
        bot: "DMsGuildBot | None",
        settings: Settings,
        client: SearchClient | None = None,
        notifier: MessageSender | None = None,
        memory: DedupMemory | None = None,
        clock: Callable[[], date] = date.today,
    ):
        self.bot = bot
        self.settings = settings
        self.scheduler = AsyncIOScheduler()
        if client is None:
            client = DMsGuildClient(timeout=settings.fetch_timeout_seconds)
        if notifier is None:
            notifier = ChannelNotifier(
                bot, settings.discord_channel_id, timeout=settings.send_timeout_seconds
            )
        self.client = client
        self.notifier = notifier
        self.clock = clock
        self.memory = memory if memory is not None else DedupMemory(current_day=clock())
        self.state = TickState.IDLE
        self._stopping = asyncio.Event()
        self._tick_lock = asyncio.Lock()

    async def start(self) -> None:
        # a tick that overruns the interval makes the scheduler skip the next
        # firing with a warning instead of running two ticks at once
        self.scheduler.add_job(
            self._search_job,
            IntervalTrigger(minutes=self.settings.check_minutes),
            id=SEARCH_JOB_ID,
            next_run_time=datetime.now(),
            max_instances=1,
            replace_existing=True,
        )
        self.scheduler.start()
        log.info(f"Scheduler started, searching every {self.settings.check_minutes}m")

    async def stop(self) -> None:
        """Let the in-flight tick finish its current row, then shut down."""
        self._stopping.set()
        async with self._tick_lock:
            pass
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        await self.client.close()
        log.info("Watcher stopped")

    @property
    def stopping(self) -> bool:
        return self._stopping.is_set()

    async def _search_job(self) -> None:
        await self.run_tick()

    async def run_tick(self) -> TickReport:
        report = TickReport()
        async with self._tick_lock:
            if self.stopping:
                report.status = TickStatus.CANCELLED
                return report
            try:
                await self._run(report)
            except FetchError as e:
                log.error(f"Could not perform DMs Guild search: {e}")
                report.status = TickStatus.FAILED
                report.error = str(e)
            except DeliveryError as e:
                log.error(f"Could not send Discord message: {e}")
                report.status = TickStatus.FAILED
                report.error = str(e)
            finally:
                self.state = TickState.IDLE

        log.info(
            f"Tick {report.status.value}: {report.rows} rows, "
            f"{report.sent} sent, {report.skipped_total} skipped, "
            f"{len(self.memory)} titles seen today"
        )
        return report

    async def _run(self, report: TickReport) -> None:
        self.state = TickState.FETCHING
        html = await self.client.search(self.settings.dmg_search_keywords)

        self.state = TickState.PARSING
        entries = extract_rows(html)
        report.rows = len(entries)

        self.state = TickState.PROCESSING
        outcomes = process_entries(
            entries,
            self.memory,
            today=self.clock(),
            title_filter=self.settings.dmg_title_filter,
            affiliate_id=self.settings.dmg_affiliate_id,
        )
        for outcome in outcomes:
            if isinstance(outcome, Kept):
                self.state = TickState.DELIVERING
                await self.notifier.send(outcome.message)
                report.sent += 1
                log.info(f"Posted: {outcome.product.title}")
                self.state = TickState.PROCESSING
            else:
                report.record_skip(outcome.reason)

            if self.stopping:
                log.info("Stop requested, ending tick early")
                report.status = TickStatus.CANCELLED
                return
