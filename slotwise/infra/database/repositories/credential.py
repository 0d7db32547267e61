"""Credential repository: a user's stored integration credentials."""
from __future__ import annotations

from typing import List

from sqlalchemy import select

from slotwise.infra.database.models.credential import Credential
from slotwise.infra.database.repositories.base import BaseRepository


class CredentialRepository(BaseRepository[Credential]):
    model = Credential

    async def list_calendar_credentials(self, user_id: int) -> List[Credential]:
        """Calendar-type credentials of a user, invalid ones included (filtered downstream)."""
        stmt = (
            select(Credential)
            .where(Credential.user_id == user_id)
            .where(Credential.type.like("%\\_calendar", escape="\\"))
            .order_by(Credential.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
