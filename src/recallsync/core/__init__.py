"""Core types, configuration, errors and run logging."""
