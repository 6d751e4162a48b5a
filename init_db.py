#!/usr/bin/env python3
"""
Create every table declared by the models, then seed the permission catalogue.
"""

from sqlalchemy import inspect
from app import create_app
from extensions import db
from services.permission_service import seed_default_permissions


def init_database():
    app = create_app()

    with app.app_context():
        print("Creating tables...")
        db.create_all()
        created = seed_default_permissions()

        tables = inspect(db.engine).get_table_names()
        print(f"✅ {len(tables)} tables ready, permissions seeded ({created})")
        for table in sorted(tables):
            print(f"  - {table}")


if __name__ == "__main__":
    init_database()
