"""
gsheets2img core module - data model and shared components
"""

from .interfaces import *
from .exceptions import *
from .logging_manager import *
from .metrics import *

__all__ = [
    # Data model
    'Tab',
    'SelectionCriteria',
    'Region',
    'ViewportSize',
    'RenderResult',
    'RunSummary',
    'IArchiveSource',

    # Exceptions
    'Gsheets2ImgException',
    'FetchError',
    'ExtractionError',
    'LayoutError',
    'CaptureError',
    'ConfigurationError',
    'BrowserLaunchError',

    # Logging & Metrics
    'LoggingManager',
    'get_logging_manager',
    'setup_logging',
    'MetricsCollector',
    'PerformanceTimer',
    'WorkingSetGauge',
    'get_metrics_collector',
]
