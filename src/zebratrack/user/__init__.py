"""Current user information."""

from .roles import ConfiguredRoleProvider

__all__ = ["ConfiguredRoleProvider"]
