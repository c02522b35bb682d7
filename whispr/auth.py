from __future__ import annotations

from typing import Iterable

from whispr.errors import Unauthorized


class ModeratorDirectory:
    """Allow-list of moderator identities. Stands in for the admin session provider."""

    def __init__(self, admin_ids: Iterable[str]):
        self.admin_ids = {a for a in admin_ids if a}

    def verify_moderator(self, identity: str | None) -> str:
        if not identity or identity not in self.admin_ids:
            raise Unauthorized("Admin verification failed.")
        return identity
