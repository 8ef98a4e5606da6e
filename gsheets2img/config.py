import os
import json
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from .core.exceptions import ConfigurationError
from .core.interfaces import SelectionCriteria

# Load environment variables
load_dotenv()

EXPORT_URL_TEMPLATE = "https://docs.google.com/spreadsheets/d/{sheet_id}/export?format=zip"
SUPPORTED_BROWSERS = ("firefox", "chromium", "webkit")
SUPPORTED_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _split_list(raw: Optional[str]) -> Optional[List[str]]:
    """Parse a comma-separated env value; unset or blank means no list"""
    if raw is None or not raw.strip():
        return None
    return [item.strip() for item in raw.split(",") if item.strip()]


def _parse_flag(value: Any) -> bool:
    """Truthy strings are 1, true, yes and on, in any case"""
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _env_flag(name: str, default: str) -> bool:
    return _parse_flag(os.getenv(name, default))


def default_configuration() -> Dict[str, Any]:
    """Configuration built from the environment"""
    return {
        "sheet": {
            "sheet_id": os.getenv("GSHEETS2IMG_SHEET_ID"),
            "export_url_template": os.getenv("GSHEETS2IMG_EXPORT_URL", EXPORT_URL_TEMPLATE),
            "include_sheets": _split_list(os.getenv("GSHEETS2IMG_INCLUDE_SHEETS")),
            "exclude_sheets": _split_list(os.getenv("GSHEETS2IMG_EXCLUDE_SHEETS")),
        },
        "render": {
            # Kept as given; validate_configuration() checks it is a positive integer
            "concurrency": os.getenv("GSHEETS2IMG_CONCURRENCY", "4"),
            "browser": os.getenv("GSHEETS2IMG_BROWSER", "firefox"),
            "headless": _env_flag("GSHEETS2IMG_HEADLESS", "true"),
            "device_scale_factor": os.getenv("GSHEETS2IMG_DEVICE_SCALE_FACTOR", "2"),
            "image_extension": os.getenv("GSHEETS2IMG_IMAGE_EXTENSION", ".jpg"),
            "navigation_timeout_ms": os.getenv("GSHEETS2IMG_NAVIGATION_TIMEOUT_MS", "0"),
        },
        "paths": {
            "output_dir": os.getenv("GSHEETS2IMG_OUTPUT_DIR", "./output"),
            "temp_dir": os.getenv("GSHEETS2IMG_TEMP_DIR") or None,
        },
        "logging": {
            "log_dir": os.getenv("GSHEETS2IMG_LOG_DIR", "./logs"),
            "level": os.getenv("GSHEETS2IMG_LOG_LEVEL", "INFO"),
        },
    }


def merge_configuration(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """Merge overlay into base section by section; None values in overlay are ignored"""
    merged = {section: dict(values) if isinstance(values, dict) else values
              for section, values in base.items()}
    for section, values in overlay.items():
        if isinstance(values, dict) and isinstance(merged.get(section), dict):
            merged[section].update({key: value for key, value in values.items() if value is not None})
        elif values is not None:
            merged[section] = values
    return merged


def _parse_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}", error_code="invalid_value")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}", error_code="invalid_value") from e


def _parse_float(value: Any, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be a number, got {value!r}", error_code="invalid_value") from e


def _parse_list(value: Any, name: str) -> Optional[List[str]]:
    if value is None:
        return None
    if isinstance(value, str):
        return _split_list(value)
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    raise ConfigurationError(f"{name} must be a list of sheet names, got {value!r}", error_code="invalid_value")


def validate_configuration(config: Dict[str, Any]) -> Dict[str, Any]:
    """Check and normalise a configuration dict, raising ConfigurationError on bad values"""
    sheet = config.get("sheet", {})
    render = config.get("render", {})
    paths = config.get("paths", {})
    logging_config = config.get("logging", {})

    if not sheet.get("sheet_id"):
        raise ConfigurationError(
            "No sheet ID configured (set GSHEETS2IMG_SHEET_ID or --sheet-id)",
            error_code="missing_sheet_id"
        )
    if "{sheet_id}" not in sheet.get("export_url_template", ""):
        raise ConfigurationError(
            "Export URL template must contain a {sheet_id} placeholder",
            error_code="invalid_export_url"
        )

    concurrency = _parse_int(render.get("concurrency"), "concurrency")
    if concurrency < 1:
        raise ConfigurationError(
            f"Concurrency must be at least 1, got {concurrency}",
            error_code="invalid_concurrency"
        )

    browser = str(render.get("browser", "")).lower()
    if browser not in SUPPORTED_BROWSERS:
        raise ConfigurationError(
            f"Unsupported browser: {render.get('browser')!r}",
            error_code="unsupported_browser",
            details={"supported": list(SUPPORTED_BROWSERS)}
        )

    image_extension = str(render.get("image_extension", "")).lower()
    if not image_extension.startswith("."):
        image_extension = "." + image_extension
    if image_extension not in SUPPORTED_IMAGE_EXTENSIONS:
        raise ConfigurationError(
            f"Unsupported image extension: {render.get('image_extension')!r}",
            error_code="unsupported_image_extension",
            details={"supported": list(SUPPORTED_IMAGE_EXTENSIONS)}
        )

    device_scale_factor = _parse_float(render.get("device_scale_factor"), "device_scale_factor")
    if device_scale_factor <= 0:
        raise ConfigurationError("device_scale_factor must be positive", error_code="invalid_value")

    navigation_timeout_ms = _parse_float(render.get("navigation_timeout_ms", 0), "navigation_timeout_ms")
    if navigation_timeout_ms < 0:
        raise ConfigurationError("navigation_timeout_ms must not be negative", error_code="invalid_value")

    level = str(logging_config.get("level", "INFO")).upper()
    if level not in LOG_LEVELS:
        raise ConfigurationError(f"Unknown log level: {level}", error_code="invalid_log_level")

    if not paths.get("output_dir"):
        raise ConfigurationError("No output directory configured", error_code="missing_output_dir")

    validated = merge_configuration(config, {
        "render": {
            "concurrency": concurrency,
            "browser": browser,
            "headless": _parse_flag(render.get("headless", True)),
            "device_scale_factor": device_scale_factor,
            "image_extension": image_extension,
            "navigation_timeout_ms": navigation_timeout_ms,
        },
        "logging": {"level": level},
    })
    # Set directly: merge_configuration would skip a cleared (None) list
    validated["sheet"]["include_sheets"] = _parse_list(sheet.get("include_sheets"), "include_sheets")
    validated["sheet"]["exclude_sheets"] = _parse_list(sheet.get("exclude_sheets"), "exclude_sheets")
    return validated


def load_configuration(config_path: Optional[str] = None,
                       overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Environment defaults, then the JSON config file, then explicit overrides"""
    config = default_configuration()

    if config_path:
        if not os.path.exists(config_path):
            raise ConfigurationError(f"Config file not found: {config_path}", error_code="missing_config_file")
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                custom_config = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Failed to load config file {config_path}: {e}",
                                     error_code="invalid_config_file") from e
        if not isinstance(custom_config, dict):
            raise ConfigurationError(f"Config file {config_path} must hold a JSON object",
                                     error_code="invalid_config_file")
        config = merge_configuration(config, custom_config)

    if overrides:
        config = merge_configuration(config, overrides)

    return validate_configuration(config)


def selection_criteria(config: Dict[str, Any]) -> SelectionCriteria:
    sheet = config.get("sheet", {})
    return SelectionCriteria(
        include=sheet.get("include_sheets"),
        exclude=sheet.get("exclude_sheets"),
    )
