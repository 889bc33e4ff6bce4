"""Core infrastructure: structured logging and error types."""
