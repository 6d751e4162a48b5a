from datetime import datetime, timezone
from extensions import db
from sqlalchemy import String, cast, func
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import validates

AUDIENCE_LEVELS = ("Internal", "Partner", "EndUser")
PARTNER_VISIBLE_AUDIENCES = ("Partner", "EndUser")


class AssetFile(db.Model):
    """One stored revision of a document inside a folder."""

    __tablename__ = "asset_files"

    id = db.Column(db.Integer, primary_key=True)
    folder_id = db.Column(db.Integer, db.ForeignKey("asset_folders.id"), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    original_file_name = db.Column(db.String(255), nullable=False)
    stored_file_name = db.Column(db.String(255), nullable=False)
    storage_path = db.Column(db.String(1024), nullable=False)
    file_type = db.Column(db.String(20), nullable=True)
    file_size = db.Column(db.BigInteger, nullable=True)
    description = db.Column(db.Text, nullable=True)
    uploaded_by = db.Column(db.Integer, nullable=True)
    audience_level = db.Column(db.String(20), default="Internal", nullable=False)
    is_archived = db.Column(db.Boolean, default=False, nullable=False)
    is_deleted = db.Column(db.Boolean, default=False, nullable=False)
    version_group_id = db.Column(db.String(64), nullable=True)
    version_number = db.Column(db.Integer, default=1, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    folder = db.relationship("Folder", back_populates="files")
    tags = db.relationship(
        "AssetFileTag", back_populates="file", cascade="all, delete-orphan", order_by="AssetFileTag.tag_name"
    )

    __table_args__ = (
        db.Index("idx_asset_files_folder_title", "folder_id", "title"),
        db.Index("idx_asset_files_version_group", "version_group_id"),
        db.CheckConstraint("version_number >= 1", name="ck_asset_files_version_positive"),
    )

    @hybrid_property
    def effective_group_id(self):
        return self.version_group_id or str(self.id)

    @effective_group_id.expression
    def effective_group_id(cls):
        return func.coalesce(cls.version_group_id, cast(cls.id, String))

    @validates("audience_level")
    def validate_audience_level(self, key, value):
        if value not in AUDIENCE_LEVELS:
            raise ValueError(f"Invalid audience level: {value}")
        return value

    def tag_names(self):
        return [tag.tag_name for tag in self.tags]

    def to_dict(self):
        return {
            "id": self.id,
            "folderId": self.folder_id,
            "title": self.title,
            "originalFileName": self.original_file_name,
            "fileType": self.file_type,
            "fileSize": self.file_size,
            "description": self.description,
            "uploadedBy": self.uploaded_by,
            "audienceLevel": self.audience_level,
            "isArchived": self.is_archived,
            "versionGroupId": self.effective_group_id,
            "versionNumber": self.version_number,
            "tags": self.tag_names(),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<AssetFile {self.title} v{self.version_number}>"


class AssetFileTag(db.Model):
    __tablename__ = "asset_file_tags"

    id = db.Column(db.Integer, primary_key=True)
    file_id = db.Column(db.Integer, db.ForeignKey("asset_files.id", ondelete="CASCADE"), nullable=False)
    tag_name = db.Column(db.String(100), nullable=False)

    file = db.relationship("AssetFile", back_populates="tags")

    __table_args__ = (
        db.UniqueConstraint("file_id", "tag_name", name="uq_asset_file_tags_file_tag"),
    )
