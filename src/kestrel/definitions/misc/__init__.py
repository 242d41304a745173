"""General purpose commands."""
