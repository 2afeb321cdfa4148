"""Command-line Google Drive manager."""

__version__ = "0.1.0"
