"""Application layer: services and use cases orchestrating the domain."""
