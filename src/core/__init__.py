"""Shared infrastructure: settings-driven logging, request context, storage clients."""
