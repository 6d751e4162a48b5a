from datetime import datetime, timezone
from extensions import db
from werkzeug.security import generate_password_hash, check_password_hash

USER_TYPES = ("INTERNAL", "PARTNER")


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=True)
    role_id = db.Column(db.Integer, db.ForeignKey("roles.id"), nullable=True)
    user_type = db.Column(db.String(20), default="INTERNAL", nullable=False)
    partner_category = db.Column(db.String(50), nullable=True)
    status = db.Column(db.String(20), default="ACTIVE", nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    role = db.relationship("Role", backref="users", lazy=True)
    asset_permissions = db.relationship(
        "UserAssetPermission", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    assignments = db.relationship(
        "AssetFileAssignment", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self):
        return f"<User {self.email}>"

    @property
    def role_name(self):
        return self.role.name if self.role else None

    @property
    def is_active(self) -> bool:
        return self.status == "ACTIVE"

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)
        return self.password_hash

    def check_password(self, password: str) -> bool:
        if not self.password_hash or password is None:
            return False
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "roleId": self.role_id,
            "role": self.role_name,
            "userType": self.user_type,
            "partnerCategory": self.partner_category,
            "status": self.status,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
