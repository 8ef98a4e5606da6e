"""
Core data model and interfaces for gsheets2img components
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional


@dataclass
class Tab:
    """One sheet of the exported document and the image it renders to"""
    identifier: str
    source_path: Path
    output_path: Path


@dataclass
class SelectionCriteria:
    """Allow-list and deny-list of tab identifiers"""
    include: Optional[List[str]] = None
    exclude: Optional[List[str]] = None

    def allows(self, identifier: str) -> bool:
        """Check a single identifier; the deny-list always wins"""
        if self.exclude and identifier in self.exclude:
            return False
        if self.include:
            return identifier in self.include
        return True


@dataclass
class Region:
    """Rectangle of page coordinates to capture"""
    x: float
    y: float
    width: float
    height: float

    def as_clip(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class ViewportSize:
    width: int
    height: int

    def as_dict(self) -> Dict[str, int]:
        return {"width": self.width, "height": self.height}


@dataclass
class RenderResult:
    """Outcome of one render job"""
    identifier: str
    output_path: Optional[Path] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    duration: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None and self.output_path is not None


@dataclass
class RunSummary:
    """Result of a complete export-to-images run"""
    sheet_id: str
    selected: List[str] = field(default_factory=list)
    results: List[RenderResult] = field(default_factory=list)
    duration: float = 0.0

    @property
    def rendered(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def failed(self) -> int:
        return sum(1 for result in self.results if not result.success)

    def as_dict(self) -> Dict[str, object]:
        return {
            "sheet_id": self.sheet_id,
            "selected": list(self.selected),
            "rendered": self.rendered,
            "failed": self.failed,
            "duration": self.duration,
            "results": [
                {
                    "identifier": result.identifier,
                    "output_path": str(result.output_path) if result.output_path else None,
                    "error": result.error,
                    "error_type": result.error_type,
                    "duration": result.duration,
                }
                for result in self.results
            ],
        }


class IArchiveSource(ABC):
    """Interface for a directory of per-tab documents"""

    @abstractmethod
    def list(self) -> List[str]:
        """Return the tab identifiers found in the archive"""
        pass

    @abstractmethod
    def load(self, identifier: str) -> Path:
        """Return the path of the document for a tab"""
        pass
