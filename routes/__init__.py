# routes/__init__.py
from .auth_routes import auth_bp
from .asset_routes import asset_bp
from .asset_admin_routes import asset_admin_bp
from .admin_routes import admin_bp


def register_blueprints(app):
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(asset_bp, url_prefix="/assets")
    app.register_blueprint(asset_admin_bp, url_prefix="/assets/admin")
    app.register_blueprint(admin_bp, url_prefix="/admin")
