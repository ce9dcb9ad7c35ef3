"""Version information for image-tools."""

__version__ = "1.0.0"
