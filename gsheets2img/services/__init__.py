"""
gsheets2img services - archive, selection, region, rendering and orchestration
"""

from .tab_selector import *
from .region_service import *
from .archive_service import *
from .browser_service import *
from .render_scheduler import *
from .orchestrator_service import *

__all__ = [
    # Archive
    'ArchiveService',
    'ExtractedArchive',

    # Selection and geometry
    'select_tabs',
    'compute_region',
    'locate_region',
    'size_viewport',

    # Rendering
    'BrowserConfig',
    'BrowserService',
    'RenderScheduler',

    # Main orchestrator
    'Gsheets2ImgOrchestratorService'
]
