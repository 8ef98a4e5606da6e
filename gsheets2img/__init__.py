"""
gsheets2img - render each tab of a Google Sheets document to a cropped image
"""

__version__ = "0.1.0"
