"""Discord client subclass and the cogs that feed it events."""
