"""Activity log service.

Writes are best-effort: they happen after the change they describe has
committed, and a failing write is logged and dropped. The caller's
operation succeeds either way.
"""

from typing import Any, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from qahub.db.models import ActionType, ActivityLog
from qahub.logging import get_logger

logger = get_logger(__name__)


class AuditService:
    """Service for the workspace activity log."""

    def log_activity(
        self,
        session: Session,
        actor_id: UUID,
        action_type: ActionType,
        entity_type: str,
        entity_id: Optional[UUID] = None,
        entity_name: Optional[str] = None,
        workspace_id: Optional[UUID] = None,
        details: Optional[dict[str, Any]] = None,
        project_id: Optional[UUID] = None,
    ) -> Optional[ActivityLog]:
        """Record an activity.

        Args:
            session: Database session
            actor_id: User who performed the action
            action_type: create, update or delete
            entity_type: Kind of entity affected (e.g. "member", "invite")
            entity_id: ID of the affected entity
            entity_name: Human-readable label (e.g. the member's email)
            workspace_id: Workspace where the action occurred
            details: Specific action and values, e.g. {"action": "invited", ...}
            project_id: Project scope, if any

        Returns:
            The stored entry, or None if the write failed
        """
        entry = ActivityLog(
            user_id=actor_id,
            action_type=action_type,
            entity_type=entity_type,
            entity_id=entity_id,
            entity_name=entity_name,
            workspace_id=workspace_id,
            project_id=project_id,
            details=details or {},
        )
        try:
            session.add(entry)
            session.commit()
            session.refresh(entry)
        except SQLAlchemyError as e:
            session.rollback()
            logger.warning(
                "activity_log_failed",
                entity_type=entity_type,
                action_type=action_type.value,
                workspace_id=str(workspace_id) if workspace_id else None,
                error=str(e),
            )
            return None

        logger.info(
            "activity_logged",
            log_id=str(entry.id),
            action_type=action_type.value,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id else None,
            workspace_id=str(workspace_id) if workspace_id else None,
            user_id=str(actor_id),
        )
        return entry

    def list_for_workspace(
        self, session: Session, workspace_id: UUID, limit: int = 50
    ) -> list[ActivityLog]:
        """Most recent activity in a workspace."""
        statement = (
            select(ActivityLog)
            .where(ActivityLog.workspace_id == workspace_id)
            .order_by(ActivityLog.created_at.desc())
            .limit(limit)
        )
        return list(session.exec(statement).all())


# Global instance
audit_service = AuditService()
