"""Roles of the current user, resolved from configuration."""

import logging
from typing import Optional

from ..config import UserConfig
from ..domain.models import Role
from ..exceptions import RecordFormatError

logger = logging.getLogger(__name__)


class ConfiguredRoleProvider:
    """Looks up the user's roles and default role from the user config section."""

    def __init__(self, user_config: UserConfig) -> None:
        self.user_config = user_config
        self._roles: Optional[dict[int, Role]] = None

    @property
    def roles(self) -> dict[int, Role]:
        if self._roles is None:
            self._roles = {}
            for data in self.user_config.roles:
                try:
                    role = Role.from_dict(data)
                except RecordFormatError as e:
                    logger.warning(f"Ignoring invalid role in configuration: {e}")
                    continue
                self._roles[role.id] = role
        return self._roles

    def get_role(self, role_id: int) -> Optional[Role]:
        return self.roles.get(int(role_id))

    def get_current_user_default_role(self) -> Optional[Role]:
        """The configured default role.

        A default role id that is not among the known roles still yields a
        minimal role carrying just the id.
        """
        role_id = self.user_config.default_role_id
        if role_id is None:
            return None
        return self.get_role(role_id) or Role(id=int(role_id))
