# scripts/seed_permissions.py
import os
import sys

# Ensure the project root is on sys.path so top-level imports resolve
_SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
_PROJECT_ROOT = os.path.dirname(_SCRIPT_DIR)
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

from models.permission import Permission
from models.role import ADMIN_ROLE, Role
from services.permission_service import replace_role_permissions, seed_default_permissions
from app import create_app


def seed_permissions():
    app = create_app()
    with app.app_context():
        created = seed_default_permissions()
        print(f"✅ Permission catalogue ensured (created: {created})")

        # Admin bypasses checks anyway; the explicit mapping keeps the login payload readable
        admin_role = Role.query.filter_by(name=ADMIN_ROLE).first()
        all_ids = [p.id for p in Permission.query.all()]
        codes = replace_role_permissions(admin_role.id, all_ids)
        print(f"✅ {ADMIN_ROLE} role mapped to {len(codes)} permissions")


if __name__ == "__main__":
    seed_permissions()
