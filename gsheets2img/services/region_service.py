"""
Locating the data region of a rendered tab and sizing the viewport for it
"""

import math
from typing import Any, Dict

from ..core.interfaces import Region, ViewportSize
from ..core.exceptions import LayoutError

# Frozen row numbers on the left of a Google Sheets HTML export
ROW_HEADER_SELECTOR = ".row-header-wrapper"
BODY_SELECTOR = "tbody"
HEADER_BORDER_OFFSET = 1

BASELINE_VIEWPORT = ViewportSize(width=1920, height=1080)
VIEWPORT_MARGIN = 100


def compute_region(header_box: Dict[str, float], body_box: Dict[str, float]) -> Region:
    """
    Clip the frozen header off the body rectangle.

    The region starts one border past the header's right edge and spans the
    rest of the body at its full height.
    """
    header_width = header_box["width"]
    offset = header_width + HEADER_BORDER_OFFSET

    region = Region(
        x=body_box["x"] + offset,
        y=body_box["y"],
        width=body_box["width"] - offset,
        height=body_box["height"],
    )

    if region.width <= 0 or region.height <= 0:
        raise LayoutError(
            f"Data region is empty ({region.width}x{region.height})",
            error_code="empty_region",
            details={"header": dict(header_box), "body": dict(body_box)},
        )
    return region


async def _bounding_box(page: Any, selector: str) -> Dict[str, float]:
    element = await page.query_selector(selector)
    if element is None:
        raise LayoutError(
            f"Element not found: {selector}",
            error_code="missing_element",
            details={"selector": selector},
        )

    box = await element.bounding_box()
    if box is None:
        raise LayoutError(
            f"Element is not rendered: {selector}",
            error_code="invisible_element",
            details={"selector": selector},
        )
    return box


async def locate_region(page: Any,
                        header_selector: str = ROW_HEADER_SELECTOR,
                        body_selector: str = BODY_SELECTOR) -> Region:
    """Measure the header and body of a loaded page and return the region to capture"""
    header_box = await _bounding_box(page, header_selector)
    body_box = await _bounding_box(page, body_selector)
    return compute_region(header_box, body_box)


def size_viewport(region: Region,
                  baseline: ViewportSize = BASELINE_VIEWPORT,
                  margin: int = VIEWPORT_MARGIN) -> ViewportSize:
    """
    Viewport large enough to hold the whole region.

    Each axis is max(baseline, floor(extent) + margin), so content wider or
    taller than the baseline frame is never wrapped or squeezed.
    """
    return ViewportSize(
        width=max(baseline.width, math.floor(region.width) + margin),
        height=max(baseline.height, math.floor(region.height) + margin),
    )

