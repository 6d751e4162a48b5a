"""
Tests for permission seeding and replace-all updates
"""
import pytest

from extensions import db
from models.asset_permission import AssetPermission
from models.permission import Permission
from models.role import Role
from services import permission_service
from services.errors import NotFoundError, ValidationError


class TestSeeding:

    def test_catalogue_is_complete(self, app):
        codes = {p.permission_code for p in AssetPermission.query.all()}
        assert len(codes) == 12
        assert 'ASSET_FOLDER_DELETE' in codes
        assert Role.query.filter_by(name='Admin').count() == 1
        assert {p.code for p in Permission.query.all()} == {'USERS_MANAGE', 'ROLES_MANAGE', 'AUDIT_VIEW'}

    def test_seeding_is_idempotent(self, app):
        assert permission_service.seed_default_permissions() == {'roles': 0, 'permissions': 0, 'asset_permissions': 0}

    def test_read_cannot_be_an_asset_grant(self, app):
        with pytest.raises(ValueError):
            AssetPermission(resource_type='FILE', action='READ', permission_code='ASSET_FILE_READ')


class TestRolePermissions:

    def ids(self, *codes):
        return [p.id for p in Permission.query.all() if p.code in codes]

    def test_replace_all(self, make_role):
        role = make_role('Sales', ['AUDIT_VIEW'])

        codes = permission_service.replace_role_permissions(role.id, self.ids('USERS_MANAGE', 'ROLES_MANAGE'))

        assert codes == ['ROLES_MANAGE', 'USERS_MANAGE']
        assert permission_service.role_permission_codes(role.id) == codes

    def test_unknown_id_rolls_back_everything(self, make_role):
        role = make_role('Sales', ['AUDIT_VIEW'])

        with pytest.raises(ValidationError):
            permission_service.replace_role_permissions(role.id, self.ids('USERS_MANAGE') + [987654])

        db.session.expire_all()
        assert permission_service.role_permission_codes(role.id) == ['AUDIT_VIEW']

    def test_missing_role(self, app):
        with pytest.raises(NotFoundError):
            permission_service.replace_role_permissions(999, [])

    def test_ids_must_be_a_list(self, make_role):
        with pytest.raises(ValidationError):
            permission_service.replace_role_permissions(make_role('Sales').id, 'all')

    def test_route_replaces_role_permissions(self, client, make_role, admin_headers):
        role = make_role('Sales', ['AUDIT_VIEW'])

        response = client.post(f'/admin/roles/{role.id}/permissions',
                               json={'permissionIds': self.ids('ROLES_MANAGE')}, headers=admin_headers)

        assert response.status_code == 200
        assert response.get_json()['permissions'] == ['ROLES_MANAGE']


class TestUserAssetPermissions:

    def asset_ids(self, *codes):
        return [p.id for p in AssetPermission.query.filter(AssetPermission.permission_code.in_(codes)).all()]

    def test_replace_all(self, make_user):
        user = make_user()
        permission_service.replace_user_asset_permissions(user.id, self.asset_ids('ASSET_BU_CREATE'))

        codes = permission_service.replace_user_asset_permissions(
            user.id, self.asset_ids('ASSET_FILE_CREATE', 'ASSET_FILE_UPDATE'), granted_by=1
        )

        assert codes == ['ASSET_FILE_CREATE', 'ASSET_FILE_UPDATE']
        assert permission_service.user_asset_codes(user.id) == set(codes)

    def test_module_permission_ids_are_rejected(self, make_user):
        user = make_user()
        permission_service.replace_user_asset_permissions(user.id, self.asset_ids('ASSET_BU_CREATE'))
        bogus = max(p.id for p in AssetPermission.query.all()) + 100

        with pytest.raises(ValidationError):
            permission_service.replace_user_asset_permissions(user.id, [bogus])

        assert permission_service.user_asset_codes(user.id) == {'ASSET_BU_CREATE'}

    def test_grants_disappear_with_user(self, make_user):
        user = make_user()
        permission_service.replace_user_asset_permissions(user.id, self.asset_ids('ASSET_BU_CREATE'))
        user_id = user.id

        db.session.delete(user)
        db.session.commit()

        assert permission_service.user_asset_codes(user_id) == set()

    def test_admin_endpoint(self, client, make_user, admin_headers):
        user = make_user()

        response = client.post(f'/assets/admin/users/{user.id}/asset-permissions',
                               json={'permissionIds': self.asset_ids('ASSET_FOLDER_CREATE')}, headers=admin_headers)
        listing = client.get(f'/assets/admin/users/{user.id}/asset-permissions', headers=admin_headers)

        assert response.status_code == 200
        assert response.get_json()['permissions'] == ['ASSET_FOLDER_CREATE']
        assert [p['permissionCode'] for p in listing.get_json()] == ['ASSET_FOLDER_CREATE']
