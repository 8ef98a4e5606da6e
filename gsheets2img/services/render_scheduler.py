"""
Bounded scheduling of render jobs against a shared browser
"""

import asyncio
import time
from typing import Any, List, Optional, Sequence

try:
    from playwright.async_api import Error as PlaywrightError
except ImportError:
    raise ImportError("Playwright not installed. Run: pip install playwright && playwright install firefox")

from ..core.interfaces import Tab, RenderResult, ViewportSize
from ..core.exceptions import CaptureError, ConfigurationError, LayoutError
from ..core.logging_manager import get_logging_manager
from ..core.metrics import MetricsCollector, WorkingSetGauge, get_metrics_collector
from .region_service import BASELINE_VIEWPORT, locate_region, size_viewport


class RenderScheduler:
    """
    Runs one render job per tab, at most ``concurrency`` at a time.

    All jobs share one browser; each job opens its own page and closes it
    when done. A permit is taken from the semaphore before a job is started,
    so submission suspends while the working set is full.
    """

    def __init__(self, browser: Any, concurrency: int,
                 device_scale_factor: float = 2,
                 initial_viewport: ViewportSize = BASELINE_VIEWPORT,
                 navigation_timeout: float = 0,
                 run_id: Optional[str] = None,
                 metrics: Optional[MetricsCollector] = None):
        if isinstance(concurrency, bool) or not isinstance(concurrency, int) or concurrency < 1:
            raise ConfigurationError(
                f"Concurrency must be a positive integer, got {concurrency!r}",
                error_code="invalid_concurrency"
            )

        self.browser = browser
        self.concurrency = concurrency
        self.device_scale_factor = device_scale_factor
        self.initial_viewport = initial_viewport
        self.navigation_timeout = navigation_timeout
        self.run_id = run_id

        self.logging_manager = get_logging_manager()
        self.logger = self.logging_manager.get_logger("scheduler")
        self.metrics = metrics or get_metrics_collector()
        # Jobs in flight for this scheduler only
        self.working_set = WorkingSetGauge()

        self._semaphore = asyncio.Semaphore(concurrency)

    async def run(self, tabs: Sequence[Tab]) -> List[RenderResult]:
        """Render every tab and return once all jobs have resolved"""
        tasks: List[asyncio.Task] = []
        self.logger.info(
            f"Scheduling {len(tabs)} render jobs (concurrency {self.concurrency})",
            extra={"run_id": self.run_id, "event_type": "schedule_start"}
        )

        try:
            for tab in tabs:
                await self._semaphore.acquire()
                try:
                    task = asyncio.create_task(self._run_job(tab), name=f"render:{tab.identifier}")
                except BaseException:
                    self._semaphore.release()
                    raise
                tasks.append(task)

            results = await asyncio.gather(*tasks)

        except asyncio.CancelledError:
            self.logger.warning(
                f"Render run cancelled with {self.working_set.current} jobs in flight",
                extra={"run_id": self.run_id, "event_type": "schedule_cancelled"}
            )
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        stats = self.working_set.get_stats()
        self.metrics.record_custom_metric(
            "render_working_set_peak", stats["peak"],
            {"run_id": self.run_id, "concurrency": self.concurrency}
        )
        self.logger.info(
            f"All {len(results)} render jobs resolved (peak working set {stats['peak']})",
            extra={
                "run_id": self.run_id,
                "event_type": "schedule_complete",
                "performance_data": stats
            }
        )
        return list(results)

    async def _run_job(self, tab: Tab) -> RenderResult:
        # The permit was acquired by run(); it is released here, after the
        # job has left the working set
        self.working_set.enter()
        try:
            return await self.render_tab(tab)
        finally:
            self.working_set.exit()
            self._semaphore.release()

    async def render_tab(self, tab: Tab) -> RenderResult:
        """Render a single tab to its output path, containing any failure"""
        start_time = time.time()
        result = RenderResult(identifier=tab.identifier)

        with self.metrics.time_operation("render_tab") as timer:
            try:
                await self._capture(tab)
                result.output_path = tab.output_path
                timer.finish(success=True, tab_id=tab.identifier)

            except (LayoutError, CaptureError) as e:
                result.error = str(e)
                result.error_type = type(e).__name__
                timer.finish(success=False, tab_id=tab.identifier, error_type=result.error_type)
                self.logging_manager.log_error(
                    e, tab_id=tab.identifier, run_id=self.run_id,
                    context={"source": str(tab.source_path)}, logger_name="scheduler"
                )

            except Exception as e:
                result.error = str(e)
                result.error_type = type(e).__name__
                timer.finish(success=False, tab_id=tab.identifier, error_type=result.error_type)
                self.logger.exception(
                    f"Unexpected failure rendering tab {tab.identifier}: {e}",
                    extra={
                        "run_id": self.run_id,
                        "tab_id": tab.identifier,
                        "event_type": "render_unexpected_error",
                        "error_details": {"error_type": result.error_type, "error_message": str(e)}
                    }
                )

        result.duration = time.time() - start_time
        if result.success:
            self.logging_manager.log_tab_rendered(
                tab.identifier, str(tab.output_path), duration=result.duration, run_id=self.run_id
            )
        return result

    async def _capture(self, tab: Tab):
        page = await self.browser.new_page(
            viewport=self.initial_viewport.as_dict(),
            device_scale_factor=self.device_scale_factor
        )

        try:
            try:
                await page.goto(tab.source_path.resolve().as_uri(), timeout=self.navigation_timeout)
            except PlaywrightError as e:
                raise CaptureError(
                    f"Navigation to {tab.identifier} failed: {e}",
                    error_code="navigation_failed",
                    details={"source": str(tab.source_path)}
                ) from e

            region = await locate_region(page)
            viewport = size_viewport(region)
            self.logger.debug(
                f"Tab {tab.identifier}: clip {region.as_clip()} in viewport {viewport.as_dict()}",
                extra={"run_id": self.run_id, "tab_id": tab.identifier, "event_type": "region_located"}
            )

            try:
                await page.set_viewport_size(viewport.as_dict())
                await page.screenshot(path=str(tab.output_path), clip=region.as_clip())
            except (PlaywrightError, OSError) as e:
                raise CaptureError(
                    f"Screenshot of {tab.identifier} failed: {e}",
                    error_code="screenshot_failed",
                    details={"output": str(tab.output_path)}
                ) from e

        finally:
            await page.close()
