# routes/auth_routes.py

from flask import Blueprint, request, jsonify
from flask_jwt_extended import create_access_token
from models.audit_log import AuditAction
from models.user import User
from services.audit_logger import audit_logger
from services.permission_service import role_permission_codes
from utils.security import login_required, current_principal

auth_bp = Blueprint("auth", __name__)


def build_token_claims(user):
    """Claims embedded at login; authorization reads them instead of re-querying roles."""
    return {
        "id": user.id,
        "role": user.role_name,
        "userType": user.user_type,
        "partnerCategory": user.partner_category,
        "permissions": role_permission_codes(user.role_id),
    }


@auth_bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        if request.form:
            data = request.form.to_dict()
        else:
            return jsonify({"msg": "JSON payload expected"}), 400

    email = (data.get("email") or "").strip().lower()
    password = data.get("password")
    if not email or not password:
        return jsonify({"msg": "Email and password are required"}), 400

    user = User.query.filter(User.email == email).first()
    if not user or not user.check_password(password):
        return jsonify({"msg": "Invalid credentials"}), 401
    if not user.is_active:
        return jsonify({"msg": "Account is disabled"}), 403

    claims = build_token_claims(user)
    access_token = create_access_token(identity=str(user.id), additional_claims=claims)
    audit_logger.log(user.id, AuditAction.LOGIN, "user", user.id)

    return jsonify({
        "access_token": access_token,
        "user": dict(user.to_dict(), permissions=claims["permissions"]),
    }), 200


@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    principal = current_principal()
    return jsonify({
        "id": principal.user_id,
        "role": principal.role,
        "userType": principal.user_type,
        "partnerCategory": principal.partner_category,
        "permissions": sorted(principal.permissions),
    }), 200
