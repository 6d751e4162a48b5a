#!/usr/bin/env python3
"""
Create the first administrator account.

Credentials come from ADMIN_EMAIL / ADMIN_PASSWORD / ADMIN_NAME.
"""
import os
import sys
from app import create_app
from extensions import db
from models.role import ADMIN_ROLE, Role
from models.user import User
from services.permission_service import seed_default_permissions


def create_admin_user(email=None, password=None, name=None):
    email = (email or os.getenv("ADMIN_EMAIL", "admin@salespro.local")).strip().lower()
    password = password or os.getenv("ADMIN_PASSWORD")
    name = name or os.getenv("ADMIN_NAME", "Administrator")

    app = create_app()
    with app.app_context():
        seed_default_permissions()
        admin_role = Role.query.filter_by(name=ADMIN_ROLE).first()

        existing = User.query.filter_by(email=email).first()
        if existing:
            print(f"✅ User already exists: {existing.email} (role: {existing.role_name})")
            return existing

        if not password:
            print("❌ ADMIN_PASSWORD is required to create the administrator")
            sys.exit(1)

        admin_user = User(name=name, email=email, role_id=admin_role.id)
        admin_user.set_password(password)
        try:
            db.session.add(admin_user)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        print("✅ Administrator created:")
        print(f"   Email: {admin_user.email}")
        print(f"   Role: {ADMIN_ROLE}")
        print(f"   ID: {admin_user.id}")
        return admin_user


if __name__ == "__main__":
    create_admin_user()
