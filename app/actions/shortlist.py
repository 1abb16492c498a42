"""
Shortlist Actions

Pro users keep a prioritized list of freelancers they want to work with.
"""

from typing import Optional

from sqlalchemy.exc import IntegrityError

from app.actions.base import BaseActions
from app.domain.marketplace import ShortlistAddRequest, ShortlistUpdateRequest
from app.domain.models import ActionResult, Identity
from app.domain.subscription import PRO_REQUIRED_MESSAGE
from app.infrastructure.db.models.shortlist import ShortlistEntry
from app.infrastructure.db.repositories.shortlist_repository import ShortlistRepository
from app.infrastructure.db.repositories.user_repository import UserRepository


class ShortlistActions(BaseActions):
    def __init__(self, session, notifier=None):
        super().__init__(session, notifier)
        self.shortlist = ShortlistRepository(session)
        self.users = UserRepository(session)

    async def _require_pro(self, identity: Optional[Identity]) -> Optional[ActionResult]:
        denied = self.require_identity(identity)
        if denied:
            return denied
        if not await self.has_pro(identity.user_id):
            return ActionResult.fail(PRO_REQUIRED_MESSAGE)
        return None

    async def add_to_shortlist(
        self,
        identity: Optional[Identity],
        data: ShortlistAddRequest,
    ) -> ActionResult:
        denied = await self._require_pro(identity)
        if denied:
            return denied
        if data.user_id == identity.user_id:
            return ActionResult.fail("You cannot add yourself to your shortlist")
        if await self.users.get_by_id(data.user_id) is None:
            return ActionResult.fail("User not found")
        if await self.shortlist.get_entry(identity.user_id, data.user_id):
            return ActionResult.fail("User already in your shortlist")

        try:
            async with self.session.begin_nested():
                entry = await self.shortlist.create(
                    ShortlistEntry(
                        user_id=identity.user_id,
                        shortlisted_user_id=data.user_id,
                        category_id=data.category_id,
                        notes=data.notes,
                        priority=data.priority,
                    )
                )
        except IntegrityError:
            return ActionResult.fail("User already in your shortlist")
        return ActionResult.ok(entry_id=entry.id)

    async def remove_from_shortlist(self, identity: Optional[Identity], user_id: str) -> ActionResult:
        denied = self.require_identity(identity)
        if denied:
            return denied

        entry = await self.shortlist.get_entry(identity.user_id, user_id)
        if entry is None:
            return ActionResult.fail("User not in your shortlist")
        await self.shortlist.delete(entry.id)
        return ActionResult.ok()

    async def update_shortlist_entry(
        self,
        identity: Optional[Identity],
        user_id: str,
        data: ShortlistUpdateRequest,
    ) -> ActionResult:
        denied = await self._require_pro(identity)
        if denied:
            return denied

        entry = await self.shortlist.get_entry(identity.user_id, user_id)
        if entry is None:
            return ActionResult.fail("User not in your shortlist")

        updated = await self.shortlist.update(entry.id, data.model_dump(exclude_unset=True))
        return ActionResult.ok(entry=updated.model_dump())

    async def get_shortlist(
        self,
        identity: Optional[Identity],
        category_id: Optional[str] = None,
    ) -> ActionResult:
        """Entries by priority (highest first), then newest first."""
        denied = await self._require_pro(identity)
        if denied:
            return denied

        entries = []
        for entry in await self.shortlist.list_for_user(identity.user_id, category_id):
            user = await self.users.get_by_id(entry.shortlisted_user_id)
            entries.append(
                {
                    **entry.model_dump(),
                    "user": {
                        "id": user.id,
                        "name": user.name,
                        "avatar_url": user.avatar_url,
                        "is_id_verified": user.is_id_verified,
                    } if user else None,
                }
            )
        return ActionResult.ok(entries=entries)

    async def get_shortlist_by_category(self, identity: Optional[Identity], category_id: str) -> ActionResult:
        return await self.get_shortlist(identity, category_id)

    async def is_in_shortlist(self, identity: Optional[Identity], user_id: str) -> ActionResult:
        if identity is None:
            return ActionResult.ok(in_shortlist=False)
        entry = await self.shortlist.get_entry(identity.user_id, user_id)
        return ActionResult.ok(in_shortlist=entry is not None)
