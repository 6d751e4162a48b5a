# routes/asset_admin_routes.py

from flask import Blueprint, request, jsonify
from models.asset_permission import AssetPermission
from models.audit_log import AuditAction
from services import permission_service
from services.assignment_service import AssignmentService
from services.audit_logger import audit_logger
from services.catalog_service import CatalogService
from services.errors import AssetServiceError
from utils.security import current_principal, require_module_permission

asset_admin_bp = Blueprint("asset_admin", __name__)
assignments = AssignmentService()
catalog = CatalogService(assignments)


@asset_admin_bp.errorhandler(AssetServiceError)
def handle_asset_service_error(error):
    return jsonify({"msg": error.message, "code": error.code}), error.status_code


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@asset_admin_bp.route("/assign-version", methods=["POST"])
@require_module_permission("USERS", "MANAGE")
def assign_version():
    """Pin a user to a revision; assetFileId null or -1 reverts to latest."""
    data = _json_body()
    user_id = data.get("userId")
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        return jsonify({"msg": "userId must be an integer"}), 400

    actor_id = current_principal().user_id
    assignment = assignments.assign(user_id, data.get("assetFileId"), data.get("versionGroupId"), assigned_by=actor_id)

    if assignment is None:
        audit_logger.log(actor_id, AuditAction.UNASSIGN, "asset_file_assignment", data.get("versionGroupId"),
                         {"userId": user_id})
        return jsonify({"msg": "Assignment removed, user follows latest version"}), 200

    audit_logger.log(actor_id, AuditAction.ASSIGN, "asset_file_assignment", assignment.version_group_id,
                     {"userId": user_id, "assetFileId": assignment.asset_file_id})
    return jsonify(assignment.to_dict()), 200


@asset_admin_bp.route("/users/<int:user_id>/assignments", methods=["GET"])
@require_module_permission("USERS", "MANAGE")
def list_user_assignments(user_id):
    return jsonify(assignments.list_assignments(user_id)), 200


@asset_admin_bp.route("/asset-permissions", methods=["GET"])
@require_module_permission("USERS", "MANAGE")
def list_asset_permissions():
    permissions = AssetPermission.query.order_by(AssetPermission.resource_type, AssetPermission.action).all()
    return jsonify([p.to_dict() for p in permissions]), 200


@asset_admin_bp.route("/users/<int:user_id>/asset-permissions", methods=["GET"])
@require_module_permission("USERS", "MANAGE")
def get_user_asset_permissions(user_id):
    return jsonify(permission_service.list_user_asset_permissions(user_id)), 200


@asset_admin_bp.route("/users/<int:user_id>/asset-permissions", methods=["POST"])
@require_module_permission("USERS", "MANAGE")
def set_user_asset_permissions(user_id):
    data = _json_body()
    actor_id = current_principal().user_id
    codes = permission_service.replace_user_asset_permissions(user_id, data.get("permissionIds"), granted_by=actor_id)
    audit_logger.log(actor_id, AuditAction.GRANT, "user_asset_permissions", user_id, {"permissions": codes})
    return jsonify({"userId": user_id, "permissions": codes}), 200


@asset_admin_bp.route("/assets/search", methods=["GET"])
@require_module_permission("USERS", "MANAGE")
def search_assets():
    return jsonify(catalog.search_groups(request.args.get("q", ""))), 200
