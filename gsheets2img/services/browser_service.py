"""
Lifetime of the shared headless browser used by render jobs
"""

from typing import Optional

try:
    from playwright.async_api import async_playwright, Browser, Playwright
    from playwright.async_api import Error as PlaywrightError
except ImportError:
    raise ImportError("Playwright not installed. Run: pip install playwright && playwright install firefox")

from ..config import SUPPORTED_BROWSERS
from ..core.exceptions import BrowserLaunchError, ConfigurationError
from ..core.logging_manager import get_logging_manager


class BrowserConfig:
    """Configuration for the shared browser process"""
    def __init__(self, browser_name: str = "firefox", headless: bool = True):
        self.browser_name = browser_name
        self.headless = headless


class BrowserService:
    """Starts one browser process and shuts it down exactly once"""

    def __init__(self, config: BrowserConfig = None):
        self.config = config or BrowserConfig()
        if self.config.browser_name not in SUPPORTED_BROWSERS:
            raise ConfigurationError(
                f"Unsupported browser: {self.config.browser_name}",
                error_code="unsupported_browser",
                details={"supported": list(SUPPORTED_BROWSERS)}
            )
        self.logger = get_logging_manager().get_logger("browser")
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None

    async def start(self) -> Browser:
        """Launch the browser and return it"""
        self.logger.info(f"Launching {self.config.browser_name} (headless={self.config.headless})")
        try:
            self.playwright = await async_playwright().start()
        except PlaywrightError as e:
            raise BrowserLaunchError(
                f"Failed to start Playwright: {e}",
                error_code="playwright_start_failed"
            ) from e

        try:
            browser_type = getattr(self.playwright, self.config.browser_name)
            self.browser = await browser_type.launch(headless=self.config.headless)
        except BaseException as e:
            await self.playwright.stop()
            self.playwright = None
            if isinstance(e, PlaywrightError):
                raise BrowserLaunchError(
                    f"Failed to launch {self.config.browser_name}: {e}",
                    error_code="browser_launch_failed",
                    details={"browser": self.config.browser_name}
                ) from e
            raise

        self.logger.info(f"Browser started: {self.config.browser_name} {self.browser.version}")
        return self.browser

    async def cleanup(self):
        """Close the browser and stop Playwright"""
        browser, self.browser = self.browser, None
        playwright, self.playwright = self.playwright, None

        try:
            if browser is not None:
                await browser.close()
                self.logger.info("Browser closed")
        finally:
            if playwright is not None:
                await playwright.stop()
                self.logger.info("Playwright stopped")

    async def __aenter__(self) -> Browser:
        return await self.start()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.cleanup()
