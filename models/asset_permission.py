from datetime import datetime, timezone
from extensions import db
from sqlalchemy.orm import validates

ASSET_RESOURCE_TYPES = ("BU", "PRODUCT", "FOLDER", "FILE")
# READ is implicit for every authenticated user and never stored as a grant
ASSIGNABLE_ASSET_ACTIONS = ("CREATE", "UPDATE", "DELETE")


def asset_permission_code(resource_type: str, action: str) -> str:
    return f"ASSET_{resource_type.upper()}_{action.upper()}"


class AssetPermission(db.Model):
    """Resource-level capability on the asset hierarchy (BU/Product/Folder/File x C/U/D)."""

    __tablename__ = "asset_permissions"

    id = db.Column(db.Integer, primary_key=True)
    resource_type = db.Column(db.String(20), nullable=False)
    action = db.Column(db.String(20), nullable=False)
    permission_code = db.Column(db.String(50), unique=True, nullable=False)
    description = db.Column(db.String(255), nullable=True)

    grants = db.relationship("UserAssetPermission", back_populates="permission", cascade="all, delete-orphan")

    @validates("resource_type")
    def validate_resource_type(self, key, value):
        value = (value or "").upper()
        if value not in ASSET_RESOURCE_TYPES:
            raise ValueError(f"Unknown asset resource type: {value}")
        return value

    @validates("action")
    def validate_action(self, key, value):
        value = (value or "").upper()
        if value not in ASSIGNABLE_ASSET_ACTIONS:
            raise ValueError(f"Asset action {value} cannot be granted")
        return value

    def to_dict(self):
        return {
            "id": self.id,
            "resourceType": self.resource_type,
            "action": self.action,
            "permissionCode": self.permission_code,
            "description": self.description,
        }

    def __repr__(self):
        return f"<AssetPermission {self.permission_code}>"


class UserAssetPermission(db.Model):
    __tablename__ = "user_asset_permissions"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    permission_id = db.Column(db.Integer, db.ForeignKey("asset_permissions.id", ondelete="CASCADE"), nullable=False)
    granted_by = db.Column(db.Integer, nullable=True)
    granted_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)

    user = db.relationship("User", back_populates="asset_permissions")
    permission = db.relationship("AssetPermission", back_populates="grants")

    __table_args__ = (
        db.UniqueConstraint("user_id", "permission_id", name="uq_user_asset_permissions_user_permission"),
        db.Index("idx_user_asset_permissions_user", "user_id"),
    )

    def __repr__(self):
        return f"<UserAssetPermission user={self.user_id} permission={self.permission_id}>"
