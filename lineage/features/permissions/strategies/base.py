from abc import ABC, abstractmethod
from typing import List

from lineage.features.permissions.types import Permission, PermissionContext, PermissionResult


class PermissionStrategy(ABC):
    """
    A pluggable rule evaluator contributing one opinion to an access decision.

    Strategies are consulted in descending ``priority``. ``name`` is used for
    ``granted_by`` attribution. ``may_veto`` is False for strategies that
    never return ``denied=True``; once a grant is recorded the service skips
    them.
    """
    name: str = ""
    priority: int = 0
    may_veto: bool = True

    @abstractmethod
    async def can_access(self, permission: Permission, context: PermissionContext) -> PermissionResult:
        """
        Give this strategy's opinion on ``permission``.

        Must return a neutral result, never raise, when the permission is
        outside the strategy's concern.
        """

    @abstractmethod
    async def get_permissions(self, context: PermissionContext) -> List[Permission]:
        """Permissions this strategy alone would grant in ``context``."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(name={self.name!r}, priority={self.priority})>"
