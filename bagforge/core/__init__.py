"""Core infrastructure: configuration, logging, errors and the operation context."""
