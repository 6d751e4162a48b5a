from datetime import datetime, timezone
from extensions import db


class AssetFileAssignment(db.Model):
    """A user's pin on one specific revision of a version group."""

    __tablename__ = "asset_file_assignments"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    asset_file_id = db.Column(db.Integer, db.ForeignKey("asset_files.id", ondelete="CASCADE"), nullable=False)
    version_group_id = db.Column(db.String(64), nullable=False)
    assigned_by = db.Column(db.Integer, nullable=True)
    assigned_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)

    user = db.relationship("User", back_populates="assignments")
    asset_file = db.relationship("AssetFile")

    __table_args__ = (
        # at most one pin per user per logical document
        db.UniqueConstraint("user_id", "version_group_id", name="uq_asset_file_assignments_user_group"),
        db.Index("idx_asset_file_assignments_file", "asset_file_id"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "assetFileId": self.asset_file_id,
            "versionGroupId": self.version_group_id,
            "assignedBy": self.assigned_by,
            "assignedAt": self.assigned_at.isoformat() if self.assigned_at else None,
        }

    def __repr__(self):
        return f"<AssetFileAssignment user={self.user_id} group={self.version_group_id} file={self.asset_file_id}>"
