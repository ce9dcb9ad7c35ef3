"""Settings for image-tools."""
