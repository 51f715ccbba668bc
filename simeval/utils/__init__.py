"""Collection of utilities."""
