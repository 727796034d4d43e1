"""Infrastructure adapters: API connectors, media devices and the CLI."""
