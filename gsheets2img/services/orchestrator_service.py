"""
Orchestrator coordinating archive fetch, tab selection and rendering
"""

import time
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ..core.interfaces import Tab, RunSummary, RenderResult
from ..core.logging_manager import get_logging_manager
from ..core.metrics import get_metrics_collector
from ..config import selection_criteria
from .archive_service import ArchiveService, ExtractedArchive
from .browser_service import BrowserConfig, BrowserService
from .region_service import BASELINE_VIEWPORT
from .render_scheduler import RenderScheduler
from .tab_selector import select_tabs


class Gsheets2ImgOrchestratorService:
    """
    Runs one export: fetch the archive, pick the tabs, render them with a
    shared browser, and release the browser and the extracted directory.
    """

    def __init__(self, config: Dict[str, Any],
                 archive_service: Optional[ArchiveService] = None,
                 browser_service_factory: Optional[Callable[[], Any]] = None):
        self.config = config
        self.logging_manager = get_logging_manager()
        self.logger = self.logging_manager.get_logger("orchestrator")
        self.metrics = get_metrics_collector()

        self.archive_service = archive_service or ArchiveService(
            export_url_template=config["sheet"]["export_url_template"],
            temp_dir=config.get("paths", {}).get("temp_dir"),
        )
        self.browser_service_factory = browser_service_factory or self._default_browser_service

        self.is_processing = False

    def _default_browser_service(self) -> BrowserService:
        render_config = self.config["render"]
        return BrowserService(BrowserConfig(
            browser_name=render_config.get("browser", "firefox"),
            headless=render_config.get("headless", True),
        ))

    async def run(self) -> RunSummary:
        """
        Process the configured sheet end to end.

        FetchError and ExtractionError propagate to the caller; per-tab
        failures are reported in the returned summary.
        """
        if self.is_processing:
            raise RuntimeError("A run is already in progress")

        sheet_id = self.config["sheet"]["sheet_id"]
        run_id = uuid.uuid4().hex[:12]
        start_time = time.time()
        self.is_processing = True
        self.logging_manager.log_run_start(sheet_id, run_id)

        try:
            with self.metrics.time_operation("fetch_archive"):
                archive = await self.archive_service.fetch(sheet_id)

            try:
                results, selected = await self._render_archive(archive, run_id)
            finally:
                archive.cleanup()

        finally:
            self.is_processing = False

        summary = RunSummary(
            sheet_id=sheet_id,
            selected=selected,
            results=results,
            duration=time.time() - start_time,
        )
        self.logger.info(
            f"Run {run_id} finished: {summary.rendered} rendered, {summary.failed} failed",
            extra={
                "run_id": run_id,
                "sheet_id": sheet_id,
                "event_type": "run_completed",
                "performance_data": {
                    "duration_seconds": summary.duration,
                    "selected": len(selected),
                    "rendered": summary.rendered,
                    "failed": summary.failed,
                }
            }
        )
        return summary

    def build_tabs(self, archive: ExtractedArchive, identifiers: List[str]) -> List[Tab]:
        output_dir = Path(self.config["paths"]["output_dir"])
        extension = self.config["render"].get("image_extension", ".jpg")
        return [
            Tab(
                identifier=identifier,
                source_path=archive.load(identifier),
                output_path=output_dir / f"{identifier}{extension}",
            )
            for identifier in identifiers
        ]

    async def _render_archive(self, archive: ExtractedArchive, run_id: str):
        identifiers = archive.list()
        selected = select_tabs(identifiers, selection_criteria(self.config))
        self.logging_manager.log_event(
            "tabs_selected",
            f"Selected {len(selected)} of {len(identifiers)} tabs",
            run_id=run_id,
            logger_name="orchestrator",
        )
        self.metrics.record_custom_metric(
            "tabs_selected", len(selected), {"run_id": run_id, "available": len(identifiers)}
        )

        output_dir = Path(self.config["paths"]["output_dir"])
        output_dir.mkdir(parents=True, exist_ok=True)

        if not selected:
            self.logger.warning("No tabs selected, nothing to render", extra={"run_id": run_id})
            return [], selected

        tabs = self.build_tabs(archive, selected)
        render_config = self.config["render"]

        browser_service = self.browser_service_factory()
        with self.logging_manager.log_performance("render_tabs", run_id=run_id, component="orchestrator"):
            async with browser_service as browser:
                scheduler = RenderScheduler(
                    browser,
                    concurrency=render_config["concurrency"],
                    device_scale_factor=render_config.get("device_scale_factor", 2),
                    initial_viewport=BASELINE_VIEWPORT,
                    navigation_timeout=render_config.get("navigation_timeout_ms", 0),
                    run_id=run_id,
                    metrics=self.metrics,
                )
                results: List[RenderResult] = await scheduler.run(tabs)

        return results, selected
