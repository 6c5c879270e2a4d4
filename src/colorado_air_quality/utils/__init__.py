"""Configuration and time utilities."""
