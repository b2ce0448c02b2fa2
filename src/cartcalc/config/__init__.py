"""Configuration: TOML sections, settings merge, and logging setup."""
