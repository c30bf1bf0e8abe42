"""Monitoring helpers."""
