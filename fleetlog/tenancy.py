"""Mapping of chats to tenants."""

import logging
from dataclasses import dataclass, field
from typing import Protocol

from fleetlog.core.config import TenantConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TenantContext:
    """Tenant an event belongs to.

    An empty ``admin_user_ids`` means every member may administer entries.
    """

    id: str
    name: str = ""
    admin_user_ids: frozenset[str] = field(default_factory=frozenset)

    def is_admin(self, user_id: str) -> bool:
        return not self.admin_user_ids or str(user_id) in self.admin_user_ids


class TenantResolver(Protocol):
    """Resolves the tenant of a chat."""

    def resolve(self, chat_id: int) -> TenantContext | None: ...


class ConfigTenantResolver:
    """TenantResolver backed by the ``tenants`` config section."""

    def __init__(self, tenants: list[TenantConfig]):
        self._by_chat: dict[int, TenantContext] = {}
        for tenant in tenants:
            context = TenantContext(
                id=tenant.id,
                name=tenant.name or tenant.id,
                admin_user_ids=frozenset(str(uid) for uid in tenant.admin_user_ids),
            )
            for chat_id in tenant.chat_ids:
                self._by_chat[chat_id] = context
        logger.info(f"Tenant resolver loaded {len(tenants)} tenant(s), {len(self._by_chat)} chat(s)")

    def resolve(self, chat_id: int) -> TenantContext | None:
        return self._by_chat.get(chat_id)
