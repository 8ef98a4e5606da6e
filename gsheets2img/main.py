"""
gsheets2img application
Command line entry point wiring configuration, logging and the orchestrator
"""

import asyncio
import sys
import argparse
from typing import Any, Dict, List, Optional

from .config import load_configuration
from .core.exceptions import Gsheets2ImgException
from .core.interfaces import RunSummary
from .core.logging_manager import setup_logging
from .core.metrics import get_metrics_collector
from .services.orchestrator_service import Gsheets2ImgOrchestratorService


class Gsheets2ImgApplication:
    """
    Application wrapper around the orchestrator
    """

    def __init__(self, config_path: str = None, overrides: Dict[str, Any] = None, **orchestrator_kwargs):
        self.config = load_configuration(config_path, overrides)

        # Setup logging first
        logging_config = self.config["logging"]
        self.logging_manager = setup_logging(logging_config["log_dir"], console_level=logging_config["level"])
        self.logger = self.logging_manager.get_logger("main")

        self.metrics = get_metrics_collector()
        self.orchestrator = Gsheets2ImgOrchestratorService(self.config, **orchestrator_kwargs)

        self.logger.info("gsheets2img application initialized")

    async def process(self) -> RunSummary:
        """Render the configured sheet; fatal errors are logged and re-raised"""
        try:
            summary = await self.orchestrator.run()
        except Gsheets2ImgException as e:
            self.logging_manager.log_error(e, context={"sheet_id": self.config["sheet"]["sheet_id"]},
                                           logger_name="main")
            raise

        for result in summary.results:
            if not result.success:
                self.logger.warning(f"Tab {result.identifier} not rendered: {result.error}")
        return summary

    def shutdown(self):
        self.logger.info("Shutting down gsheets2img application")
        self.metrics.reset_metrics()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Render each tab of a Google Sheets document to a cropped image"
    )
    parser.add_argument("--config", help="JSON configuration file path")
    parser.add_argument("--sheet-id", help="Spreadsheet ID to export")
    parser.add_argument("--output-dir", help="Directory to write the images to")
    parser.add_argument("--include", help="Comma-separated tab names to render (allow-list)")
    parser.add_argument("--exclude", help="Comma-separated tab names to skip (deny-list)")
    parser.add_argument("--concurrency", type=int, help="Maximum number of tabs rendered at once")
    parser.add_argument("--browser", choices=["firefox", "chromium", "webkit"], help="Browser engine to use")
    parser.add_argument("--log-dir", help="Directory for JSON log files")
    return parser.parse_args(argv)


def overrides_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    return {
        "sheet": {
            "sheet_id": args.sheet_id,
            "include_sheets": args.include,
            "exclude_sheets": args.exclude,
        },
        "render": {
            "concurrency": args.concurrency,
            "browser": args.browser,
        },
        "paths": {"output_dir": args.output_dir},
        "logging": {"log_dir": args.log_dir},
    }


async def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI usage"""
    args = parse_args(argv)

    try:
        app = Gsheets2ImgApplication(config_path=args.config, overrides=overrides_from_args(args))
    except Gsheets2ImgException as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    try:
        summary = await app.process()
    except Gsheets2ImgException as e:
        print(f"Run failed: {e}", file=sys.stderr)
        return 1
    finally:
        app.shutdown()

    print(f"Rendered {summary.rendered} of {len(summary.selected)} tabs in {summary.duration:.2f}s")
    for result in summary.results:
        if not result.success:
            print(f"  failed: {result.identifier} ({result.error_type}: {result.error})")
    return 0 if summary.failed == 0 else 1


def run():
    try:
        exit_code = asyncio.run(main())
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        exit_code = 130  # Standard exit code for Ctrl+C
    sys.exit(exit_code)


if __name__ == "__main__":
    run()
