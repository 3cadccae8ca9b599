"""Shared core: ports, errors, per-owner locks and application state."""
