"""Core infrastructure: configuration, persistence, security and observability."""
