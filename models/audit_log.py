from datetime import datetime, timezone
from enum import Enum
from extensions import db


class AuditAction(Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    ARCHIVE = "ARCHIVE"
    UPLOAD = "UPLOAD"
    BULK_UPLOAD = "BULK_UPLOAD"
    DOWNLOAD = "DOWNLOAD"
    ASSIGN = "ASSIGN"
    UNASSIGN = "UNASSIGN"
    GRANT = "GRANT"
    LOGIN = "LOGIN"


class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    # nullable so the entry survives when its actor no longer exists
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = db.Column(db.String(50), nullable=False)
    entity = db.Column(db.String(50), nullable=False)
    entity_id = db.Column(db.String(64), nullable=True)
    details = db.Column(db.JSON, nullable=True)
    timestamp = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)

    user = db.relationship("User", foreign_keys=[user_id], lazy=True)

    __table_args__ = (
        db.Index("idx_audit_logs_user_timestamp", "user_id", "timestamp"),
        db.Index("idx_audit_logs_entity", "entity", "entity_id"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "userName": self.user.name if self.user else None,
            "action": self.action,
            "entity": self.entity,
            "entityId": self.entity_id,
            "details": self.details or {},
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self):
        return f"<AuditLog {self.action} {self.entity}:{self.entity_id}>"
