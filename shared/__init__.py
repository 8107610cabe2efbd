"""Shared utilities: settings, logging and small helpers."""
