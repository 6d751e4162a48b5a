import logging
from flask import Flask, jsonify, request
from flask_jwt_extended import JWTManager
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge
from extensions import db, migrate
from config import Config
from routes import register_blueprints
from services.errors import AssetServiceError
from flask_cors import CORS

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
GENERIC_ERROR_MESSAGE = "An internal error occurred"


def configure_logging(app):
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("performance").setLevel(level)


def register_jwt_callbacks(jwt):
    # every token failure answers 401 with a generic message; the detail stays in the logs
    @jwt.unauthorized_loader
    def missing_token(reason):
        logger.info(f"Missing authorization on {request.path}: {reason}")
        return jsonify({"msg": "Authentication required"}), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        logger.warning(f"Invalid token on {request.path}: {reason}")
        return jsonify({"msg": "Invalid or expired token"}), 401

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return jsonify({"msg": "Invalid or expired token"}), 401


def register_error_handlers(app):
    @app.errorhandler(RequestEntityTooLarge)
    def too_large(error):
        return jsonify({"msg": "File too large"}), 413

    @app.errorhandler(AssetServiceError)
    def asset_service_error(error):
        return jsonify({"msg": error.message, "code": error.code}), error.status_code

    @app.errorhandler(Exception)
    def unexpected_error(error):
        if isinstance(error, HTTPException):
            return jsonify({"msg": error.description}), error.code
        logger.exception(f"Unhandled error on {request.method} {request.path}")
        if app.config.get("APP_ENV") == "development" or app.debug:
            return jsonify({"msg": str(error)}), 500
        return jsonify({"msg": GENERIC_ERROR_MESSAGE}), 500


def create_app(config_overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    configure_logging(app)

    CORS(app,
         origins=app.config["CORS_ORIGINS"],
         allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
         methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
         supports_credentials=True)

    @app.after_request
    def security_headers(response):
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response

    # Init extensions
    db.init_app(app)
    jwt = JWTManager(app)
    register_jwt_callbacks(jwt)
    migrate.init_app(app, db)

    import models  # noqa: F401  register tables on the metadata

    register_blueprints(app)
    register_error_handlers(app)

    return app


if __name__ == "__main__":
    app = create_app()
    app.run(debug=app.config.get("APP_ENV") == "development", port=5001)
