"""
Pytest configuration and fixtures for backend tests
"""
import io
from datetime import datetime, timedelta

import pytest
from flask_jwt_extended import create_access_token
from werkzeug.datastructures import FileStorage

from app import create_app
from extensions import db
from models.asset_file import AssetFile
from models.permission import Permission
from models.role import ADMIN_ROLE, Role
from models.role_permission import RolePermission
from models.user import User
from routes.auth_routes import build_token_claims
from services.catalog_service import CatalogService
from services.permission_service import seed_default_permissions

TEST_JWT_SECRET = 'test-secret-key-that-is-long-enough-for-hs512-signatures-0123456789'


@pytest.fixture
def app(tmp_path):
    """Application bound to a fresh sqlite file and storage root per test"""
    app = create_app({
        'TESTING': True,
        'APP_ENV': 'testing',
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'test.db'}",
        'JWT_SECRET_KEY': TEST_JWT_SECRET,
        'STORAGE_ROOT': str(tmp_path / 'storage'),
    })

    with app.app_context():
        db.create_all()
        seed_default_permissions()
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    """Create test client"""
    return app.test_client()


@pytest.fixture
def make_role(app):
    """Create a role mapped to the given permission codes (MODULE_ACTION)"""
    def _make_role(name, codes=()):
        role = Role(name=name)
        db.session.add(role)
        db.session.flush()
        for code in codes:
            permission = next(p for p in Permission.query.all() if p.code == code)
            db.session.add(RolePermission(role_id=role.id, permission_id=permission.id))
        db.session.commit()
        return role
    return _make_role


@pytest.fixture
def make_user(app):
    """Create a user; role may be a Role instance or None"""
    counter = {'n': 0}

    def _make_user(name=None, role=None, user_type='INTERNAL', password='secret-pass', status='ACTIVE'):
        counter['n'] += 1
        name = name or f"user{counter['n']}"
        user = User(
            name=name,
            email=f"{name.lower()}@example.com",
            role_id=role.id if role is not None else None,
            user_type=user_type,
            status=status,
        )
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user
    return _make_user


@pytest.fixture
def admin_user(make_user):
    return make_user('admin', role=Role.query.filter_by(name=ADMIN_ROLE).first())


@pytest.fixture
def token_for(app):
    def _token_for(user, **overrides):
        claims = build_token_claims(user)
        claims.update(overrides)
        return create_access_token(identity=str(user.id), additional_claims=claims)
    return _token_for


@pytest.fixture
def auth_headers(token_for):
    def _auth_headers(user, **overrides):
        return {'Authorization': f"Bearer {token_for(user, **overrides)}"}
    return _auth_headers


@pytest.fixture
def admin_headers(admin_user, auth_headers):
    return auth_headers(admin_user)


@pytest.fixture
def catalog(app):
    return CatalogService()


@pytest.fixture
def folder(catalog):
    """A business unit / product / folder chain"""
    bu = catalog.create_business_unit('Enterprise')
    product = catalog.create_product(bu.id, 'Firewall')
    return catalog.create_folder(product.id, 'Datasheets')


@pytest.fixture
def other_folder(catalog, folder):
    return catalog.create_folder(folder.product_id, 'Presentations')


def make_upload(filename='deck.pdf', content=b'%PDF-1.4 test content'):
    return FileStorage(stream=io.BytesIO(content), filename=filename)


@pytest.fixture
def upload():
    return make_upload


@pytest.fixture
def make_asset(app):
    """Insert an AssetFile row directly (no binary), for version bookkeeping tests"""
    base = datetime(2024, 1, 1, 9, 0, 0)

    def _make_asset(folder, title, version_group_id=None, version_number=1, minutes=0,
                    audience_level='Internal', is_archived=False, is_deleted=False):
        asset = AssetFile(
            folder_id=folder.id,
            title=title,
            original_file_name=f"{title}.pdf",
            stored_file_name=f"{title}-{minutes}.pdf",
            storage_path=f"assets/x/{title}-{minutes}.pdf",
            file_type='PDF',
            file_size=10,
            audience_level=audience_level,
            is_archived=is_archived,
            is_deleted=is_deleted,
            version_group_id=version_group_id,
            version_number=version_number,
            created_at=base + timedelta(minutes=minutes),
        )
        db.session.add(asset)
        db.session.commit()
        return asset
    return _make_asset
