"""Utility helpers: time, errors, Redis and locking."""
