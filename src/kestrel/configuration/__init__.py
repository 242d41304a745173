"""
Configuration management for Kestrel.

- **app_configuration.py**: YAML application configuration with typed accessors.
- **guild_settings.py**: Per-guild settings cache backed by the document store.
"""
