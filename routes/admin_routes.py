# routes/admin_routes.py

from flask import Blueprint, request, jsonify
from extensions import db
from models.audit_log import AuditAction
from models.permission import Permission
from models.role import Role
from models.user import USER_TYPES, User
from services import permission_service
from services.audit_logger import audit_logger
from services.errors import AssetServiceError
from utils.security import current_principal, require_module_permission

admin_bp = Blueprint('admin', __name__)

USER_STATUSES = ("ACTIVE", "DISABLED")


@admin_bp.errorhandler(AssetServiceError)
def handle_asset_service_error(error):
    return jsonify({"msg": error.message, "code": error.code}), error.status_code


def log_admin_action(action, entity, entity_id, details=None):
    audit_logger.log(current_principal().user_id, action, entity, entity_id, details)


# ------------------------ ROLES ------------------------

@admin_bp.route('/roles', methods=['GET'])
@require_module_permission("ROLES", "MANAGE")
def get_roles():
    roles = Role.query.order_by(Role.name).all()
    return jsonify([dict(role.to_dict(), permissions=role.permission_codes()) for role in roles]), 200


@admin_bp.route('/roles', methods=['POST'])
@require_module_permission("ROLES", "MANAGE")
def create_role():
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    if not name:
        return jsonify({"msg": "Role name is required"}), 400
    if Role.query.filter_by(name=name).first():
        return jsonify({"msg": "Role already exists"}), 409

    role = Role(name=name, description=data.get('description'))
    try:
        db.session.add(role)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    log_admin_action(AuditAction.CREATE, "role", role.id, {"name": role.name})
    return jsonify(role.to_dict()), 201


@admin_bp.route('/roles/<int:role_id>/permissions', methods=['GET'])
@require_module_permission("ROLES", "MANAGE")
def get_role_permissions(role_id):
    role = db.get_or_404(Role, role_id)
    return jsonify({
        "roleId": role.id,
        "permissions": [rp.permission.to_dict() for rp in role.permissions if rp.permission],
    }), 200


@admin_bp.route('/roles/<int:role_id>/permissions', methods=['POST'])
@require_module_permission("ROLES", "MANAGE")
def set_role_permissions(role_id):
    """Replace every permission of the role with permissionIds."""
    data = request.get_json(silent=True) or {}
    codes = permission_service.replace_role_permissions(role_id, data.get('permissionIds'))
    log_admin_action(AuditAction.GRANT, "role_permissions", role_id, {"permissions": codes})
    return jsonify({"roleId": role_id, "permissions": codes}), 200


@admin_bp.route('/permissions', methods=['GET'])
@require_module_permission("USERS", "MANAGE")
def get_permissions():
    permissions = Permission.query.order_by(Permission.module, Permission.action).all()
    return jsonify([p.to_dict() for p in permissions]), 200


# ------------------------ UTILISATEURS ------------------------

@admin_bp.route('/users', methods=['GET'])
@require_module_permission("USERS", "MANAGE")
def get_all_users():
    users = User.query.order_by(User.name).all()
    return jsonify([user.to_dict() for user in users]), 200


def _validate_role_and_type(data):
    if data.get('roleId') is not None and db.session.get(Role, data['roleId']) is None:
        return "Unknown role"
    if data.get('userType') is not None and data['userType'] not in USER_TYPES:
        return f"userType must be one of {', '.join(USER_TYPES)}"
    if data.get('status') is not None and data['status'] not in USER_STATUSES:
        return f"status must be one of {', '.join(USER_STATUSES)}"
    return None


@admin_bp.route('/users', methods=['POST'])
@require_module_permission("USERS", "MANAGE")
def create_user():
    data = request.get_json(silent=True)
    if not data or not data.get('name') or not data.get('email') or not data.get('password'):
        return jsonify({"msg": "name, email and password are required"}), 400

    email = data['email'].strip().lower()
    if User.query.filter(User.email == email).first():
        return jsonify({"msg": "User already exists"}), 409
    error = _validate_role_and_type(data)
    if error:
        return jsonify({"msg": error}), 400

    user = User(
        name=data['name'].strip(),
        email=email,
        role_id=data.get('roleId'),
        user_type=data.get('userType') or "INTERNAL",
        partner_category=data.get('partnerCategory'),
    )
    user.set_password(data['password'])
    try:
        db.session.add(user)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    log_admin_action(AuditAction.CREATE, "user", user.id, {"email": user.email})
    return jsonify(user.to_dict()), 201


@admin_bp.route('/users/<int:user_id>', methods=['PUT'])
@require_module_permission("USERS", "MANAGE")
def update_user(user_id):
    user = db.get_or_404(User, user_id)
    data = request.get_json(silent=True) or {}

    error = _validate_role_and_type(data)
    if error:
        return jsonify({"msg": error}), 400

    if data.get('email') and data['email'].strip().lower() != user.email:
        email = data['email'].strip().lower()
        if User.query.filter_by(email=email).first():
            return jsonify({"msg": "Email already in use"}), 409
        user.email = email
    if data.get('name'):
        user.name = data['name'].strip()
    if 'roleId' in data:
        user.role_id = data['roleId']
    if data.get('userType'):
        user.user_type = data['userType']
    if 'partnerCategory' in data:
        user.partner_category = data['partnerCategory']
    if data.get('status'):
        user.status = data['status']
    if data.get('password'):
        user.set_password(data['password'])

    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    log_admin_action(AuditAction.UPDATE, "user", user.id, {"fields": sorted(k for k in data if k != 'password')})
    return jsonify(user.to_dict()), 200


@admin_bp.route("/users/<int:user_id>", methods=["DELETE"])
@require_module_permission("USERS", "MANAGE")
def delete_user(user_id):
    current_user_id = current_principal().user_id
    user = db.get_or_404(User, user_id)

    if user.id == current_user_id:
        return jsonify({"msg": "You cannot delete your own account"}), 400

    email = user.email
    try:
        db.session.delete(user)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    log_admin_action(AuditAction.DELETE, "user", user_id, {"email": email})
    return jsonify({"msg": "User deleted"}), 200


# ------------------------ AUDIT ------------------------

@admin_bp.route('/audit-logs', methods=['GET'])
@require_module_permission("AUDIT", "VIEW")
def get_audit_logs():
    """
    Query parameters: page, limit, userId, action, entity, entityId,
    start_date, end_date (YYYY-MM-DD)
    """
    filters = {
        'user_id': request.args.get('userId', type=int),
        'action': request.args.get('action'),
        'entity': request.args.get('entity'),
        'entity_id': request.args.get('entityId'),
        'start_date': request.args.get('start_date'),
        'end_date': request.args.get('end_date'),
    }
    page = request.args.get('page', 1, type=int)
    limit = request.args.get('limit', 50, type=int)
    return jsonify(audit_logger.get_logs(filters, page, limit)), 200
