"""
Downloading and unpacking the zip export of a spreadsheet
"""

import asyncio
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import List, Optional

import aiohttp

from ..core.interfaces import IArchiveSource
from ..core.exceptions import ExtractionError, FetchError
from ..core.logging_manager import get_logging_manager

EXPORT_URL_TEMPLATE = "https://docs.google.com/spreadsheets/d/{sheet_id}/export?format=zip"
TAB_EXTENSION = ".html"
DOWNLOAD_DIR_PREFIX = "gs2imgz-"
EXTRACT_DIR_PREFIX = "gs2imgx-"


class ExtractedArchive(IArchiveSource):
    """Directory holding one HTML document per tab"""

    def __init__(self, directory: Path, extension: str = TAB_EXTENSION):
        self.directory = Path(directory)
        self.extension = extension
        self.logger = get_logging_manager().get_logger("archive")

    def list(self) -> List[str]:
        """Tab identifiers, i.e. the stems of the documents at the archive root"""
        return sorted(
            path.name[:-len(self.extension)]
            for path in self.directory.iterdir()
            if path.is_file() and path.suffix == self.extension
        )

    def load(self, identifier: str) -> Path:
        return self.directory / f"{identifier}{self.extension}"

    def cleanup(self):
        """Remove the extracted directory"""
        shutil.rmtree(self.directory, ignore_errors=True)
        self.logger.info(f"Removed extracted archive: {self.directory}")


class ArchiveService:
    """Fetches a spreadsheet export into a temporary directory"""

    def __init__(self, export_url_template: str = EXPORT_URL_TEMPLATE,
                 temp_dir: Optional[str] = None,
                 extension: str = TAB_EXTENSION,
                 chunk_size: int = 64 * 1024,
                 timeout: Optional[float] = None):
        self.export_url_template = export_url_template
        self.temp_dir = temp_dir
        self.extension = extension
        self.chunk_size = chunk_size
        self.timeout = timeout
        self.logger = get_logging_manager().get_logger("archive")

    def export_url(self, sheet_id: str) -> str:
        return self.export_url_template.format(sheet_id=sheet_id)

    async def download(self, sheet_id: str) -> Path:
        """Download the zip export and return its local path"""
        url = self.export_url(sheet_id)
        download_dir = Path(tempfile.mkdtemp(prefix=DOWNLOAD_DIR_PREFIX, dir=self.temp_dir))
        zip_path = download_dir / f"{sheet_id}.zip"
        self.logger.info(f"Downloading export: {url}")

        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url) as response:
                    if response.status >= 400:
                        raise FetchError(
                            f"Export request failed with HTTP {response.status}",
                            error_code="http_status",
                            details={"url": url, "status": response.status}
                        )

                    size = 0
                    with open(zip_path, 'wb') as file:
                        async for chunk in response.content.iter_chunked(self.chunk_size):
                            file.write(chunk)
                            size += len(chunk)

        except FetchError:
            shutil.rmtree(download_dir, ignore_errors=True)
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            shutil.rmtree(download_dir, ignore_errors=True)
            raise FetchError(
                f"Failed to download export: {e}",
                error_code="download_failed",
                details={"url": url}
            ) from e

        self.logger.info(f"Downloaded {size} bytes to {zip_path}")
        return zip_path

    async def extract(self, zip_path: Path) -> ExtractedArchive:
        """Unpack the archive into a fresh directory, then drop the download directory"""
        zip_path = Path(zip_path)
        extracted_dir = Path(tempfile.mkdtemp(prefix=EXTRACT_DIR_PREFIX, dir=self.temp_dir))

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._extract_all, zip_path, extracted_dir)
        except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError) as e:
            shutil.rmtree(extracted_dir, ignore_errors=True)
            raise ExtractionError(
                f"Failed to extract {zip_path.name}: {e}",
                error_code="bad_archive",
                details={"zip_path": str(zip_path)}
            ) from e

        shutil.rmtree(zip_path.parent, ignore_errors=True)
        self.logger.info(f"Extracted archive to {extracted_dir}")
        return ExtractedArchive(extracted_dir, extension=self.extension)

    @staticmethod
    def _extract_all(zip_path: Path, target: Path):
        with zipfile.ZipFile(zip_path) as archive:
            archive.extractall(target)

    async def fetch(self, sheet_id: str) -> ExtractedArchive:
        """Download and extract the export of a spreadsheet"""
        zip_path = await self.download(sheet_id)
        return await self.extract(zip_path)
