"""
Shared fixtures and in-process browser fakes
"""

import asyncio
import io
import zipfile
from pathlib import Path
from typing import Dict, Iterable, Optional
from urllib.parse import unquote, urlparse

import pytest

from gsheets2img.core.interfaces import Tab
from gsheets2img.core.logging_manager import setup_logging
from gsheets2img.core.metrics import MetricsCollector

ENV_VARS = (
    "GSHEETS2IMG_SHEET_ID",
    "GSHEETS2IMG_EXPORT_URL",
    "GSHEETS2IMG_INCLUDE_SHEETS",
    "GSHEETS2IMG_EXCLUDE_SHEETS",
    "GSHEETS2IMG_CONCURRENCY",
    "GSHEETS2IMG_BROWSER",
    "GSHEETS2IMG_HEADLESS",
    "GSHEETS2IMG_DEVICE_SCALE_FACTOR",
    "GSHEETS2IMG_IMAGE_EXTENSION",
    "GSHEETS2IMG_NAVIGATION_TIMEOUT_MS",
    "GSHEETS2IMG_OUTPUT_DIR",
    "GSHEETS2IMG_TEMP_DIR",
    "GSHEETS2IMG_LOG_DIR",
    "GSHEETS2IMG_LOG_LEVEL",
)

# Header 120px wide, body 1000x400 starting at (0, 20)
STANDARD_LAYOUT = {
    ".row-header-wrapper": {"x": 0, "y": 0, "width": 120, "height": 420},
    "tbody": {"x": 0, "y": 20, "width": 1000, "height": 400},
}

NO_HEADER_LAYOUT = {
    "tbody": {"x": 0, "y": 20, "width": 1000, "height": 400},
}

TAB_HTML = "<html><body><table><tbody><tr><td>1</td></tr></tbody></table></body></html>"


class FakeElement:
    def __init__(self, box: Optional[Dict[str, float]]):
        self._box = box

    async def bounding_box(self):
        return self._box


class FakePage:
    """Just enough of playwright's async Page for the render pipeline"""

    def __init__(self, browser: "FakeBrowser", viewport: Dict[str, int]):
        self.browser = browser
        self.viewport = dict(viewport)
        self.identifier = None
        self.url = None
        self.goto_timeout = None
        self.clip = None
        self.closed = False

    async def goto(self, url, timeout=None):
        self.url = url
        self.goto_timeout = timeout
        self.identifier = Path(unquote(urlparse(url).path)).stem

        error = self.browser.goto_errors.get(self.identifier)
        if error is not None:
            raise error

        gate = self.browser.gates.get(self.identifier)
        if gate is not None:
            await gate.wait()

    async def query_selector(self, selector):
        layout = self.browser.layouts.get(self.identifier, STANDARD_LAYOUT)
        if selector not in layout:
            return None
        return FakeElement(layout[selector])

    async def set_viewport_size(self, viewport_size):
        self.viewport = dict(viewport_size)

    async def screenshot(self, path=None, clip=None, **kwargs):
        self.clip = clip
        Path(path).write_bytes(b"\xff\xd8\xff\xe0fake-image")

    async def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, layouts=None, gates=None, goto_errors=None, new_page_error=None):
        self.layouts = layouts or {}
        self.gates = gates or {}
        self.goto_errors = goto_errors or {}
        self.new_page_error = new_page_error
        self.pages = []
        self.new_page_calls = []

    async def new_page(self, **kwargs):
        self.new_page_calls.append(kwargs)
        if self.new_page_error is not None:
            raise self.new_page_error
        page = FakePage(self, kwargs.get("viewport", {}))
        self.pages.append(page)
        return page


class FakeBrowserService:
    """Async context manager standing in for BrowserService"""

    def __init__(self, browser: FakeBrowser):
        self.browser = browser
        self.started = 0
        self.closed = 0

    async def __aenter__(self):
        self.started += 1
        return self.browser

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.closed += 1


async def settle(iterations: int = 20):
    """Let every ready task run until they all block again"""
    for _ in range(iterations):
        await asyncio.sleep(0)


def write_tab_documents(directory: Path, identifiers: Iterable[str]) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    for identifier in identifiers:
        (directory / f"{identifier}.html").write_text(TAB_HTML, encoding="utf-8")
    return directory


def build_export_zip(identifiers: Iterable[str]) -> bytes:
    """Zip bytes shaped like a Google Sheets HTML export"""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for identifier in identifiers:
            archive.writestr(f"{identifier}.html", TAB_HTML)
        archive.writestr("resources/sheet.css", "td { padding: 2px; }")
    return buffer.getvalue()


@pytest.fixture(autouse=True)
def isolated_logging(tmp_path):
    """Send log files to the test's temp directory"""
    return setup_logging(str(tmp_path / "logs"))


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def metrics():
    return MetricsCollector()


@pytest.fixture
def make_tabs(tmp_path):
    """Factory creating tab documents and their output paths"""
    def factory(identifiers, output_dir: Optional[Path] = None):
        source_dir = write_tab_documents(tmp_path / "tabs", identifiers)
        output_dir = output_dir or tmp_path / "output"
        output_dir.mkdir(parents=True, exist_ok=True)
        return [
            Tab(
                identifier=identifier,
                source_path=source_dir / f"{identifier}.html",
                output_path=output_dir / f"{identifier}.jpg",
            )
            for identifier in identifiers
        ]
    return factory
