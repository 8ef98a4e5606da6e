"""
Logging manager with date-based separation and structured JSON logs
"""

import logging
import logging.handlers
import json
from datetime import datetime, date
from pathlib import Path
from typing import Dict, Any, Optional
from contextlib import contextmanager
import time

STRUCTURED_FIELDS = (
    "run_id",
    "sheet_id",
    "tab_id",
    "event_type",
    "event_source",
    "performance_data",
    "error_details",
)


class DateRotatingJSONHandler(logging.handlers.BaseRotatingHandler):
    """Handler that starts a new JSON-lines file every day"""

    def __init__(self, log_dir: str, filename_prefix: str = "gsheets2img"):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.filename_prefix = filename_prefix
        self.current_date = None
        super().__init__(filename=str(self.get_current_filename()), mode='a', encoding='utf-8', delay=True)

    def get_current_filename(self) -> Path:
        """Generate filename for current date"""
        return self.log_dir / f"{self.filename_prefix}_{date.today().isoformat()}.jsonl"

    def shouldRollover(self, record):
        return self.current_date != date.today()

    def doRollover(self):
        if self.stream:
            self.stream.close()
            self.stream = None
        self.current_date = date.today()
        self.baseFilename = str(self.get_current_filename())

    def _open(self):
        if self.shouldRollover(None):
            self.doRollover()
        return open(self.get_current_filename(), 'a', encoding='utf-8')

    def emit(self, record):
        """Emit a record as one JSON line"""
        try:
            if self.shouldRollover(record):
                self.doRollover()

            if self.stream is None:
                self.stream = self._open()

            log_data = {
                "timestamp": datetime.fromtimestamp(record.created).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
            }

            for field in STRUCTURED_FIELDS:
                if hasattr(record, field):
                    log_data[field] = getattr(record, field)

            if record.exc_info:
                log_data["exception"] = self.format_exception(record)

            self.stream.write(json.dumps(log_data, default=str) + '\n')
            self.stream.flush()

        except Exception:
            self.handleError(record)

    @staticmethod
    def format_exception(record) -> str:
        return logging.Formatter().formatException(record.exc_info)


class LoggingManager:
    """Centralized logging manager for gsheets2img"""

    def __init__(self, log_dir: str = "./logs", console_level: str = "INFO"):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.console_level = console_level
        self._setup_logging()

    def _setup_logging(self):
        root_logger = logging.getLogger("gsheets2img")
        root_logger.setLevel(logging.DEBUG)

        for handler in list(root_logger.handlers):
            handler.close()
        root_logger.handlers.clear()

        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.getLevelName(str(self.console_level).upper()))
        console_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        root_logger.addHandler(console_handler)

        json_handler = DateRotatingJSONHandler(
            log_dir=str(self.log_dir),
            filename_prefix="gsheets2img"
        )
        json_handler.setLevel(logging.DEBUG)
        root_logger.addHandler(json_handler)

        # Performance records go to their own file only
        perf_logger = logging.getLogger("gsheets2img.performance")
        for handler in list(perf_logger.handlers):
            handler.close()
        perf_logger.handlers.clear()
        perf_handler = DateRotatingJSONHandler(
            log_dir=str(self.log_dir),
            filename_prefix="gsheets2img_performance"
        )
        perf_handler.setLevel(logging.DEBUG)
        perf_logger.addHandler(perf_handler)
        perf_logger.propagate = False

    def get_logger(self, name: str) -> logging.Logger:
        """Get a logger for a specific component"""
        return logging.getLogger(f"gsheets2img.{name}")

    def log_run_start(self, sheet_id: str, run_id: str, logger_name: str = "orchestrator"):
        """Log the start of an export run"""
        self.get_logger(logger_name).info(
            f"Starting run {run_id} for sheet: {sheet_id}",
            extra={
                "run_id": run_id,
                "sheet_id": sheet_id,
                "event_type": "run_start",
                "event_source": logger_name
            }
        )

    def log_tab_rendered(self, tab_id: str, output_path: str, duration: float = None,
                         run_id: str = None, logger_name: str = "scheduler"):
        """Log a successfully written tab image"""
        self.get_logger(logger_name).info(
            f"Rendered tab {tab_id} -> {output_path}",
            extra={
                "run_id": run_id,
                "tab_id": tab_id,
                "event_type": "tab_rendered",
                "event_source": logger_name,
                "performance_data": {"duration_seconds": duration} if duration is not None else None
            }
        )

    def log_event(self, event_type: str, message: str, run_id: str = None,
                  logger_name: str = "events", **kwargs):
        """Log a general event"""
        extra_data = {
            "run_id": run_id,
            "event_type": event_type,
            "event_source": logger_name
        }
        extra_data.update(kwargs)
        self.get_logger(logger_name).info(message, extra=extra_data)

    def log_error(self, error: Exception, tab_id: str = None, run_id: str = None,
                  context: Dict[str, Any] = None, logger_name: str = "errors"):
        """Log an error with context"""
        error_details = {
            "error_type": type(error).__name__,
            "error_message": str(error),
            "context": context or {}
        }
        details = getattr(error, "details", None)
        if details:
            error_details["details"] = details

        self.get_logger(logger_name).error(
            f"Error occurred: {error}",
            extra={
                "run_id": run_id,
                "tab_id": tab_id,
                "event_type": "error",
                "event_source": logger_name,
                "error_details": error_details
            }
        )

    @contextmanager
    def log_performance(self, operation_name: str, run_id: str = None, tab_id: str = None,
                        component: str = None):
        """Context manager for logging operation durations"""
        start_time = time.time()
        logger = self.get_logger("performance")

        try:
            yield
        finally:
            duration = time.time() - start_time
            logger.info(
                f"Performance: {operation_name}",
                extra={
                    "run_id": run_id,
                    "tab_id": tab_id,
                    "event_type": "performance",
                    "event_source": component or operation_name,
                    "performance_data": {
                        "operation": operation_name,
                        "duration_seconds": duration
                    }
                }
            )


_logging_manager: Optional[LoggingManager] = None


def get_logging_manager() -> LoggingManager:
    """Get the global logging manager instance"""
    global _logging_manager
    if _logging_manager is None:
        _logging_manager = LoggingManager()
    return _logging_manager


def setup_logging(log_dir: str = None, console_level: str = "INFO") -> LoggingManager:
    """Setup and return the global logging manager"""
    global _logging_manager
    if log_dir:
        _logging_manager = LoggingManager(log_dir, console_level=console_level)
    else:
        _logging_manager = LoggingManager(console_level=console_level)
    return _logging_manager
