from .user import User
from .role import Role
from .permission import Permission
from .role_permission import RolePermission
from .asset_permission import AssetPermission, UserAssetPermission
from .business_unit import BusinessUnit
from .product import Product
from .folder import Folder
from .asset_file import AssetFile, AssetFileTag
from .asset_file_assignment import AssetFileAssignment
from .audit_log import AuditLog
from .version_group import VersionGroupId

__all__ = [
    "User",
    "Role",
    "Permission",
    "RolePermission",
    "AssetPermission",
    "UserAssetPermission",
    "BusinessUnit",
    "Product",
    "Folder",
    "AssetFile",
    "AssetFileTag",
    "AssetFileAssignment",
    "AuditLog",
    "VersionGroupId",
]
