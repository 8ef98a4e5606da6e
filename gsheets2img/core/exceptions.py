"""
Custom exceptions for gsheets2img
"""


class Gsheets2ImgException(Exception):
    """Base exception for all gsheets2img errors"""

    def __init__(self, message: str, error_code: str = None, details: dict = None):
        super().__init__(message)
        self.error_code = error_code
        self.details = details or {}


class FetchError(Gsheets2ImgException):
    """Raised when the spreadsheet export cannot be downloaded"""
    pass


class ExtractionError(Gsheets2ImgException):
    """Raised when the downloaded archive is corrupt or unreadable"""
    pass


class LayoutError(Gsheets2ImgException):
    """Raised when a tab document lacks the expected header/body structure"""
    pass


class CaptureError(Gsheets2ImgException):
    """Raised when navigating to a tab or writing its screenshot fails"""
    pass


class ConfigurationError(Gsheets2ImgException):
    """Raised when system configuration is invalid"""
    pass


class BrowserLaunchError(Gsheets2ImgException):
    """Raised when Playwright or the browser process cannot be started"""
    pass
