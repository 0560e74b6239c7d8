"""Audit log repository implementation."""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from director_auth.core.auth.entities import AuditLogEntry
from director_auth.core.auth.interfaces import AuditLogRepositoryInterface
from director_auth.core.domain.enums import AuditAction
from director_auth.infrastructure.database.models import AuditLogModel


class SqlAuditLogRepository(AuditLogRepositoryInterface):
    """
    SQLAlchemy implementation of the audit log.

    Entries are only ever inserted; retention is handled outside the
    application.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def add_entry(self, entry: AuditLogEntry) -> AuditLogEntry:
        entry_model = AuditLogModel(
            user_id=entry.user_id,
            action=entry.action.value,
            entity_type=entry.entity_type,
            entity_id=entry.entity_id,
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
            success=entry.success,
        )

        self._session.add(entry_model)
        await self._session.flush()
        return self._model_to_entity(entry_model)

    async def list_entries(
        self, user_id: Optional[int] = None, limit: int = 50, offset: int = 0
    ) -> List[AuditLogEntry]:
        """
        List entries newest first.

        Args:
            user_id: Restrict to one user's entries
            limit: Page size
            offset: Rows to skip
        """
        query = select(AuditLogModel)
        if user_id is not None:
            query = query.where(AuditLogModel.user_id == user_id)
        query = (
            query.order_by(AuditLogModel.created_at.desc(), AuditLogModel.id.desc())
            .limit(limit)
            .offset(offset)
            .execution_options(populate_existing=True)
        )

        result = await self._session.execute(query)
        return [self._model_to_entity(model) for model in result.scalars().all()]

    def _model_to_entity(self, model: AuditLogModel) -> AuditLogEntry:
        return AuditLogEntry(
            id=model.id,
            user_id=model.user_id,
            action=AuditAction(model.action),
            entity_type=model.entity_type,
            entity_id=model.entity_id,
            ip_address=model.ip_address,
            user_agent=model.user_agent,
            success=model.success,
            created_at=model.created_at,
        )
