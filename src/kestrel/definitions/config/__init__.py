"""Per-server configuration commands."""
