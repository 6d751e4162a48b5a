import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union
from sqlalchemy import desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload
from extensions import db
from models.audit_log import AuditAction, AuditLog
from services.errors import ValidationError

logger = logging.getLogger(__name__)

FK_VIOLATION_PGCODE = '23503'
MISSING_ACTOR_NOTE = "User record missing"


def is_foreign_key_violation(error: Exception) -> bool:
    orig = getattr(error, 'orig', None)
    if getattr(orig, 'pgcode', None) == FK_VIOLATION_PGCODE:
        return True
    return 'foreign key' in str(orig if orig is not None else error).lower()


class AuditLogger:
    """Append-only audit trail written after the primary change has committed"""

    def __init__(self):
        self.db = db

    def log(self, actor_id: Optional[int], action: Union[AuditAction, str], entity: str,
            entity_id: Any = None, details: Optional[Dict[str, Any]] = None) -> Optional[AuditLog]:
        """
        Record an audit entry. Never raises.

        When the actor row no longer exists the insert trips the users FK; the
        entry is then written once more without an actor, keeping the original
        id in details.

        Returns:
            The stored AuditLog, or None when it could not be written
        """
        action = action.value if isinstance(action, AuditAction) else str(action)
        entity_id = None if entity_id is None else str(entity_id)
        details = dict(details or {})

        try:
            return self._write(actor_id, action, entity, entity_id, details)
        except IntegrityError as e:
            self.db.session.rollback()
            if actor_id is None or not is_foreign_key_violation(e):
                logger.error(f"Failed to write audit log {action} {entity}:{entity_id}: {str(e)}")
                return None
            logger.warning(f"Audit actor {actor_id} no longer exists, logging {action} {entity}:{entity_id} without actor")
        except Exception as e:
            self.db.session.rollback()
            logger.error(f"Failed to write audit log {action} {entity}:{entity_id}: {str(e)}")
            return None

        details['originalUserId'] = actor_id
        details['note'] = MISSING_ACTOR_NOTE
        try:
            return self._write(None, action, entity, entity_id, details)
        except Exception as e:
            self.db.session.rollback()
            logger.error(f"Audit fallback failed for {action} {entity}:{entity_id}: {str(e)}")
            return None

    def _write(self, actor_id, action, entity, entity_id, details) -> AuditLog:
        entry = AuditLog(
            user_id=actor_id,
            action=action,
            entity=entity,
            entity_id=entity_id,
            details=details,
            timestamp=datetime.now(timezone.utc),
        )
        self.db.session.add(entry)
        self.db.session.commit()
        return entry

    def get_logs(self, filters: Dict[str, Any] = None, page: int = 1, limit: int = 50) -> Dict[str, Any]:
        """
        Paginated audit entries, newest first.

        Args:
            filters: optional user_id, action, entity, entity_id, start_date, end_date (YYYY-MM-DD)
            page: 1-based page number
            limit: items per page
        """
        filters = filters or {}
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive", 'INVALID_PAGINATION')
        limit = min(limit, 200)

        query = AuditLog.query
        if filters.get('user_id') is not None:
            query = query.filter(AuditLog.user_id == filters['user_id'])
        if filters.get('action'):
            query = query.filter(AuditLog.action == filters['action'])
        if filters.get('entity'):
            query = query.filter(AuditLog.entity == filters['entity'])
        if filters.get('entity_id') is not None:
            query = query.filter(AuditLog.entity_id == str(filters['entity_id']))
        if filters.get('start_date'):
            query = query.filter(AuditLog.timestamp >= self._parse_date(filters['start_date']))
        if filters.get('end_date'):
            end_date = self._parse_date(filters['end_date']).replace(hour=23, minute=59, second=59, microsecond=999999)
            query = query.filter(AuditLog.timestamp <= end_date)

        total_count = query.count()
        logs = query.order_by(desc(AuditLog.timestamp), desc(AuditLog.id)).offset(
            (page - 1) * limit
        ).limit(limit).options(joinedload(AuditLog.user)).all()

        total_pages = (total_count + limit - 1) // limit
        return {
            'logs': [entry.to_dict() for entry in logs],
            'pagination': {
                'page': page,
                'limit': limit,
                'total_count': total_count,
                'total_pages': total_pages,
                'has_next': page < total_pages,
                'has_prev': page > 1
            }
        }

    @staticmethod
    def _parse_date(value: str) -> datetime:
        try:
            return datetime.strptime(value, '%Y-%m-%d')
        except ValueError:
            raise ValidationError("Invalid date format. Use YYYY-MM-DD", 'INVALID_DATE_FORMAT')


audit_logger = AuditLogger()
