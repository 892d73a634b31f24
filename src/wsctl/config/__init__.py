"""Configuration: TOML file discovery, section models, settings, logging."""
