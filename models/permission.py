from extensions import db


class Permission(db.Model):
    """Module-level capability granted to roles, e.g. (USERS, MANAGE)."""

    __tablename__ = "permissions"

    id = db.Column(db.Integer, primary_key=True)
    module = db.Column(db.String(50), nullable=False)  # ex: "USERS", "ROLES", "AUDIT"
    action = db.Column(db.String(50), nullable=False)  # ex: "MANAGE", "VIEW"
    description = db.Column(db.String(255), nullable=True)

    roles = db.relationship("RolePermission", back_populates="permission", cascade="all, delete-orphan")

    __table_args__ = (
        db.UniqueConstraint("module", "action", name="uq_permissions_module_action"),
    )

    @property
    def code(self) -> str:
        return permission_code(self.module, self.action)

    def to_dict(self):
        return {
            "id": self.id,
            "module": self.module,
            "action": self.action,
            "code": self.code,
            "description": self.description,
        }

    def __repr__(self):
        return f"<Permission {self.code}>"


def permission_code(module: str, action: str) -> str:
    return f"{module.upper()}_{action.upper()}"
