"""The local user owning the habits of a workspace."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from active.models import User
from active.store import Context

logger = logging.getLogger(__name__)


class UserStorage:

    def get_user(self, context: Context) -> User | None:
        """The workspace's user: the earliest created one, if any."""
        users = context.fetch(User, key=lambda u: u.created_at)
        return users[0] if users else None

    def create(self, context: Context, created_at: datetime | None = None) -> User:
        user = context.insert(User(created_at=created_at or datetime.now(timezone.utc)))
        logger.info("Created user %s", user.id)
        return user

    def get_or_create(self, context: Context) -> User:
        return self.get_user(context) or self.create(context)
