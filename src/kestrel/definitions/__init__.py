"""Command definition files, one directory per category."""
