from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from jobcopilot.db.repositories import Repository
from jobcopilot.types import AuditActionType, AuditEntityType

logger = logging.getLogger(__name__)


class AuditLog:
    """Append-only compliance log. Recording never raises into the caller."""

    def __init__(self, session: Session):
        self.session = session
        self.repo = Repository(session)

    def record(
        self,
        action_type: AuditActionType,
        entity_type: AuditEntityType,
        entity_id: int | None,
        user_confirmed: bool,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        try:
            self.repo.add_audit_entry(
                action_type=action_type,
                entity_type=entity_type,
                entity_id=entity_id,
                user_confirmed=user_confirmed,
                metadata=metadata or {},
            )
        except Exception:
            logger.exception(
                "Failed to write audit entry action=%s entity=%s:%s",
                action_type,
                entity_type,
                entity_id,
            )
            self.session.rollback()
            return False

        suffix = f" #{entity_id}" if entity_id is not None else ""
        logger.info(
            "Audit: %s on %s%s user_confirmed=%s",
            action_type,
            entity_type,
            suffix,
            user_confirmed,
        )
        return True
