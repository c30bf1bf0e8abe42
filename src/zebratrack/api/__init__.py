"""Zebra API access."""

from .zebra_client import ZebraClient

__all__ = ["ZebraClient"]
