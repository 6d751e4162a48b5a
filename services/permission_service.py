import logging
from typing import Any, Dict, Iterable, List, Set
from extensions import db
from models.asset_permission import (
    ASSET_RESOURCE_TYPES,
    ASSIGNABLE_ASSET_ACTIONS,
    AssetPermission,
    UserAssetPermission,
    asset_permission_code,
)
from models.permission import Permission
from models.role import ADMIN_ROLE, Role
from models.role_permission import RolePermission
from models.user import User
from services.errors import NotFoundError, ValidationError
from utils.performance_logger import performance_monitor

logger = logging.getLogger(__name__)

RESOURCE_LABELS = {"BU": "business units", "PRODUCT": "products", "FOLDER": "folders", "FILE": "files"}

DEFAULT_MODULE_PERMISSIONS = [
    ("USERS", "MANAGE", "Manage users, pinned versions and asset grants"),
    ("ROLES", "MANAGE", "Manage roles and their permissions"),
    ("AUDIT", "VIEW", "Read the audit trail"),
]


def seed_default_permissions() -> Dict[str, int]:
    """
    Idempotently create the Admin role, module permissions and the asset permission catalogue.

    Returns:
        Counts of rows created per table
    """
    created = {"roles": 0, "permissions": 0, "asset_permissions": 0}
    try:
        if Role.query.filter_by(name=ADMIN_ROLE).first() is None:
            db.session.add(Role(name=ADMIN_ROLE, description="Full access"))
            created["roles"] += 1

        for module, action, description in DEFAULT_MODULE_PERMISSIONS:
            if Permission.query.filter_by(module=module, action=action).first() is None:
                db.session.add(Permission(module=module, action=action, description=description))
                created["permissions"] += 1

        for resource_type in ASSET_RESOURCE_TYPES:
            for action in ASSIGNABLE_ASSET_ACTIONS:
                code = asset_permission_code(resource_type, action)
                if AssetPermission.query.filter_by(permission_code=code).first() is None:
                    db.session.add(AssetPermission(
                        resource_type=resource_type,
                        action=action,
                        permission_code=code,
                        description=f"{action.capitalize()} {RESOURCE_LABELS[resource_type]}",
                    ))
                    created["asset_permissions"] += 1

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(f"Seeded permissions: {created}")
    return created


@performance_monitor(operation_name="role_permission_codes", operation_type="permission")
def role_permission_codes(role_id) -> List[str]:
    if role_id is None:
        return []
    role = db.session.get(Role, role_id)
    return role.permission_codes() if role else []


@performance_monitor(operation_name="user_asset_codes", operation_type="permission")
def user_asset_codes(user_id: int) -> Set[str]:
    """Codes of the live per-user asset grants."""
    rows = db.session.query(AssetPermission.permission_code).join(
        UserAssetPermission, UserAssetPermission.permission_id == AssetPermission.id
    ).filter(UserAssetPermission.user_id == user_id).all()
    return {code for (code,) in rows}


def _normalize_ids(permission_ids: Any) -> List[int]:
    if not isinstance(permission_ids, (list, tuple)):
        raise ValidationError("permissionIds must be a list", 'INVALID_PERMISSION_IDS')
    try:
        return sorted({int(pid) for pid in permission_ids})
    except (TypeError, ValueError):
        raise ValidationError("permissionIds must contain integers", 'INVALID_PERMISSION_IDS')


def _ensure_all_exist(model, ids: Iterable[int], label: str):
    ids = list(ids)
    if not ids:
        return
    found = {row_id for (row_id,) in db.session.query(model.id).filter(model.id.in_(ids)).all()}
    missing = [pid for pid in ids if pid not in found]
    if missing:
        raise ValidationError(f"Unknown {label} ids: {missing}", 'UNKNOWN_PERMISSION')


def replace_role_permissions(role_id: int, permission_ids: Any) -> List[str]:
    """Replace the whole permission set of a role in one transaction."""
    role = db.session.get(Role, role_id)
    if role is None:
        raise NotFoundError("Role not found", 'ROLE_NOT_FOUND')
    ids = _normalize_ids(permission_ids)

    try:
        _ensure_all_exist(Permission, ids, "permission")
        RolePermission.query.filter_by(role_id=role.id).delete(synchronize_session=False)
        db.session.add_all([RolePermission(role_id=role.id, permission_id=pid) for pid in ids])
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    db.session.refresh(role)
    logger.info(f"Role {role.name} now has {len(ids)} permissions")
    return role.permission_codes()


def replace_user_asset_permissions(user_id: int, permission_ids: Any, granted_by: int = None) -> List[str]:
    """Replace every asset grant of a user; ids must reference asset permissions."""
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found", 'USER_NOT_FOUND')
    ids = _normalize_ids(permission_ids)

    try:
        _ensure_all_exist(AssetPermission, ids, "asset permission")
        UserAssetPermission.query.filter_by(user_id=user.id).delete(synchronize_session=False)
        db.session.add_all([
            UserAssetPermission(user_id=user.id, permission_id=pid, granted_by=granted_by) for pid in ids
        ])
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return sorted(user_asset_codes(user.id))


def list_user_asset_permissions(user_id: int) -> List[Dict[str, Any]]:
    if db.session.get(User, user_id) is None:
        raise NotFoundError("User not found", 'USER_NOT_FOUND')
    rows = db.session.query(UserAssetPermission, AssetPermission).join(
        AssetPermission, AssetPermission.id == UserAssetPermission.permission_id
    ).filter(UserAssetPermission.user_id == user_id).order_by(AssetPermission.permission_code).all()
    return [
        dict(permission.to_dict(), grantedBy=grant.granted_by,
             grantedAt=grant.granted_at.isoformat() if grant.granted_at else None)
        for grant, permission in rows
    ]
