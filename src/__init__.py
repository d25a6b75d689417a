"""Read Master forum API."""
