from extensions import db

ADMIN_ROLE = "Admin"


class Role(db.Model):
    __tablename__ = "roles"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), unique=True, nullable=False)
    description = db.Column(db.String(255), nullable=True)

    permissions = db.relationship(
        "RolePermission", back_populates="role", cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def is_admin(self) -> bool:
        return self.name == ADMIN_ROLE

    def permission_codes(self):
        """Codes embedded in the session token at login (MODULE_ACTION)."""
        return sorted({rp.permission.code for rp in self.permissions if rp.permission})

    def to_dict(self):
        return {"id": self.id, "name": self.name, "description": self.description}

    def __repr__(self):
        return f"<Role {self.name}>"
