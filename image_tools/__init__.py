"""Utility for managing raw disk images produced by 'dd' and other tools."""

from image_tools.__version__ import __version__

__all__ = ["__version__"]
