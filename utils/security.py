from functools import wraps
from typing import Optional
from flask import g, jsonify, request
from flask_jwt_extended import get_jwt, get_jwt_identity, get_unverified_jwt_headers, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTDecodeError
from jwt.exceptions import DecodeError
from services.permission_service import user_asset_codes
from utils.permissions import Principal, evaluate_asset_permission, evaluate_module_permission
import logging

logger = logging.getLogger(__name__)

ALLOWED_TOKEN_ALGORITHMS = ("HS256", "HS384", "HS512")
FORBIDDEN_MESSAGE = "Insufficient permissions"


def _reject_disallowed_algorithm():
    """Refuse tokens whose header names an algorithm outside the allow-list (including 'none')."""
    auth_header = request.headers.get("Authorization", "")
    parts = auth_header.split()
    if len(parts) != 2 or parts[0] != "Bearer":
        return  # verify_jwt_in_request reports the missing header
    try:
        header = get_unverified_jwt_headers(parts[1])
    except DecodeError:
        raise JWTDecodeError("Invalid token")
    algorithm = header.get("alg")
    if algorithm not in ALLOWED_TOKEN_ALGORITHMS:
        logger.warning(f"Rejected token signed with algorithm {algorithm!r}")
        raise JWTDecodeError("Invalid token")


def authenticate_request() -> Principal:
    """Verify the bearer token and expose the caller as g.principal."""
    _reject_disallowed_algorithm()
    verify_jwt_in_request()
    principal = Principal.from_claims(get_jwt_identity(), get_jwt())
    g.principal = principal
    return principal


def current_principal() -> Optional[Principal]:
    return g.get("principal")


def login_required(f):
    """Any authenticated principal; used for READ on the asset hierarchy."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        authenticate_request()
        return f(*args, **kwargs)
    return decorated_function


def _forbidden(principal, check, decision):
    logger.warning(f"Permission refused for user_id={principal.user_id} role={principal.role} {check}: {decision.reason}")
    return jsonify({"msg": FORBIDDEN_MESSAGE}), 403


def require_module_permission(module, action):
    """
    Protect a route with a module permission (MODULE_ACTION in the token claims).
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            principal = authenticate_request()
            decision = evaluate_module_permission(principal, module, action)
            logger.debug(f"Module check user_id={principal.user_id} {module}_{action} -> {decision.reason}")
            if not decision:
                return _forbidden(principal, f"{module}_{action}", decision)
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def require_asset_permission(resource_type, action):
    """
    Protect a route with an asset permission held as a live per-user grant.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            principal = authenticate_request()
            granted = ()
            if not principal.is_admin and action.upper() != "READ":
                granted = user_asset_codes(principal.user_id)
            decision = evaluate_asset_permission(principal, resource_type, action, granted)
            logger.debug(f"Asset check user_id={principal.user_id} {resource_type}:{action} -> {decision.reason}")
            if not decision:
                return _forbidden(principal, f"{resource_type}:{action}", decision)
            return f(*args, **kwargs)
        return decorated_function
    return decorator
