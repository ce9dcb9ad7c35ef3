"""Command handlers for the image-tools CLI."""
