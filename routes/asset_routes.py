# routes/asset_routes.py

from flask import Blueprint, request, jsonify, send_file
from models.audit_log import AuditAction
from services.audit_logger import audit_logger
from services.catalog_service import CatalogService
from services.errors import AssetServiceError
from utils.security import current_principal, require_asset_permission

asset_bp = Blueprint("assets", __name__)
catalog = CatalogService()


@asset_bp.errorhandler(AssetServiceError)
def handle_asset_service_error(error):
    return jsonify({"msg": error.message, "code": error.code}), error.status_code


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _arg_bool(name, default=False):
    value = request.args.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("true", "1", "yes")


def _audit(action, entity, entity_id, details=None):
    audit_logger.log(current_principal().user_id, action, entity, entity_id, details)


# ===================== BUSINESS UNITS =====================

@asset_bp.route("/business-units", methods=["GET"])
@require_asset_permission("BU", "READ")
def list_business_units():
    return jsonify([bu.to_dict() for bu in catalog.list_children()]), 200


@asset_bp.route("/business-units", methods=["POST"])
@require_asset_permission("BU", "CREATE")
def create_business_unit():
    data = _json_body()
    bu = catalog.create_business_unit(data.get("name"), data.get("description"), current_principal().user_id)
    _audit(AuditAction.CREATE, "business_unit", bu.id, {"name": bu.name})
    return jsonify(bu.to_dict()), 201


@asset_bp.route("/business-units/<int:bu_id>", methods=["PUT"])
@require_asset_permission("BU", "UPDATE")
def update_business_unit(bu_id):
    data = _json_body()
    bu = catalog.update_business_unit(bu_id, data.get("name"), data.get("description"))
    _audit(AuditAction.UPDATE, "business_unit", bu.id, {"name": bu.name})
    return jsonify(bu.to_dict()), 200


@asset_bp.route("/business-units/<int:bu_id>", methods=["DELETE"])
@require_asset_permission("BU", "DELETE")
def delete_business_unit(bu_id):
    catalog.delete_business_unit(bu_id)
    _audit(AuditAction.DELETE, "business_unit", bu_id)
    return jsonify({"msg": "Business unit deleted"}), 200


# ===================== PRODUCTS =====================

@asset_bp.route("/business-units/<int:bu_id>/products", methods=["GET"])
@require_asset_permission("PRODUCT", "READ")
def list_products(bu_id):
    return jsonify([p.to_dict() for p in catalog.list_children("bu", bu_id)]), 200


@asset_bp.route("/business-units/<int:bu_id>/products", methods=["POST"])
@require_asset_permission("PRODUCT", "CREATE")
def create_product(bu_id):
    data = _json_body()
    product = catalog.create_product(bu_id, data.get("name"), data.get("description"), current_principal().user_id)
    _audit(AuditAction.CREATE, "product", product.id, {"name": product.name, "businessUnitId": bu_id})
    return jsonify(product.to_dict()), 201


@asset_bp.route("/products/<int:product_id>", methods=["PUT"])
@require_asset_permission("PRODUCT", "UPDATE")
def update_product(product_id):
    data = _json_body()
    product = catalog.update_product(product_id, data.get("name"), data.get("description"))
    _audit(AuditAction.UPDATE, "product", product.id, {"name": product.name})
    return jsonify(product.to_dict()), 200


@asset_bp.route("/products/<int:product_id>", methods=["DELETE"])
@require_asset_permission("PRODUCT", "DELETE")
def delete_product(product_id):
    catalog.delete_product(product_id)
    _audit(AuditAction.DELETE, "product", product_id)
    return jsonify({"msg": "Product deleted"}), 200


# ===================== FOLDERS =====================

@asset_bp.route("/products/<int:product_id>/folders", methods=["GET"])
@require_asset_permission("FOLDER", "READ")
def list_folders(product_id):
    return jsonify([f.to_dict() for f in catalog.list_children("product", product_id)]), 200


@asset_bp.route("/products/<int:product_id>/folders", methods=["POST"])
@require_asset_permission("FOLDER", "CREATE")
def create_folder(product_id):
    data = _json_body()
    folder = catalog.create_folder(product_id, data.get("name"), data.get("description"), current_principal().user_id)
    _audit(AuditAction.CREATE, "folder", folder.id, {"name": folder.name, "productId": product_id})
    return jsonify(folder.to_dict()), 201


@asset_bp.route("/folders/<int:folder_id>", methods=["PUT"])
@require_asset_permission("FOLDER", "UPDATE")
def update_folder(folder_id):
    data = _json_body()
    folder = catalog.update_folder(folder_id, data.get("name"), data.get("description"))
    _audit(AuditAction.UPDATE, "folder", folder.id, {"name": folder.name})
    return jsonify(folder.to_dict()), 200


@asset_bp.route("/folders/<int:folder_id>", methods=["DELETE"])
@require_asset_permission("FOLDER", "DELETE")
def delete_folder(folder_id):
    catalog.delete_folder(folder_id)
    _audit(AuditAction.DELETE, "folder", folder_id)
    return jsonify({"msg": "Folder deleted"}), 200


# ===================== FILES =====================

@asset_bp.route("/folders/<int:folder_id>/files", methods=["GET"])
@require_asset_permission("FILE", "READ")
def list_files(folder_id):
    """
    Query parameters:
    - sort: 'newest' (default) or 'oldest'
    - showArchived: include archived revisions
    - showAllVersions: flat history instead of one row per version group
    """
    files = catalog.list_files(
        folder_id,
        current_principal(),
        sort=request.args.get("sort", "newest"),
        include_archived=_arg_bool("showArchived"),
        show_all_versions=_arg_bool("showAllVersions"),
    )
    return jsonify(files), 200


@asset_bp.route("/folders/<int:folder_id>/files", methods=["POST"])
@require_asset_permission("FILE", "CREATE")
def upload_file(folder_id):
    form = request.form
    asset = catalog.create_file_version(
        folder_id,
        request.files.get("file"),
        title=form.get("title"),
        description=form.get("description"),
        audience_level=form.get("audienceLevel"),
        update_version_group_id=form.get("updateVersionGroupId"),
        tags=form.get("tags"),
        actor_id=current_principal().user_id,
    )
    _audit(AuditAction.UPLOAD, "asset_file", asset.id, {
        "title": asset.title,
        "versionGroupId": asset.version_group_id,
        "versionNumber": asset.version_number,
    })
    return jsonify(asset.to_dict()), 201


@asset_bp.route("/folders/<int:folder_id>/files/bulk", methods=["POST"])
@require_asset_permission("FILE", "CREATE")
def bulk_upload_files(folder_id):
    """Multipart `files` (repeated); each file becomes its own document."""
    form = request.form
    created, errors = catalog.create_files_bulk(
        folder_id,
        request.files.getlist("files"),
        description=form.get("description"),
        audience_level=form.get("audienceLevel"),
        actor_id=current_principal().user_id,
    )
    for asset in created:
        _audit(AuditAction.BULK_UPLOAD, "asset_file", asset.id, {
            "title": asset.title,
            "fileType": asset.file_type,
            "folderId": folder_id,
        })
    return jsonify({
        "msg": f"Uploaded {len(created)} file(s)",
        "uploadedFiles": [asset.to_dict() for asset in created],
        "errors": errors,
        "totalUploaded": len(created),
        "totalFailed": len(errors),
    }), 201


@asset_bp.route("/files/<int:file_id>", methods=["GET"])
@require_asset_permission("FILE", "READ")
def get_file(file_id):
    return jsonify(catalog.get_visible_file(file_id, current_principal()).to_dict()), 200


@asset_bp.route("/files/<int:file_id>", methods=["PUT"])
@require_asset_permission("FILE", "UPDATE")
def update_file(file_id):
    data = _json_body()
    asset = catalog.update_file_metadata(file_id, data)
    _audit(AuditAction.UPDATE, "asset_file", asset.id, {"fields": sorted(data.keys())})
    return jsonify(asset.to_dict()), 200


@asset_bp.route("/files/<int:file_id>/archive", methods=["POST"])
@require_asset_permission("FILE", "UPDATE")
def archive_file(file_id):
    data = _json_body()
    archived = data.get("archived", True)
    if not isinstance(archived, bool):
        return jsonify({"msg": "archived must be a boolean"}), 400
    asset = catalog.archive_file(file_id, archived)
    _audit(AuditAction.ARCHIVE, "asset_file", asset.id, {"archived": asset.is_archived})
    return jsonify(asset.to_dict()), 200


@asset_bp.route("/files/<int:file_id>", methods=["DELETE"])
@require_asset_permission("FILE", "DELETE")
def delete_file(file_id):
    catalog.delete_file(file_id)
    _audit(AuditAction.DELETE, "asset_file", file_id)
    return jsonify({"msg": "File deleted"}), 200


@asset_bp.route("/files/<int:file_id>/tags", methods=["POST"])
@require_asset_permission("FILE", "UPDATE")
def add_tag(file_id):
    tag = catalog.add_tag(file_id, _json_body().get("tagName"))
    _audit(AuditAction.UPDATE, "asset_file", file_id, {"addedTag": tag.tag_name})
    return jsonify({"id": tag.id, "name": tag.tag_name}), 201


@asset_bp.route("/files/<int:file_id>/tags/<int:tag_id>", methods=["DELETE"])
@require_asset_permission("FILE", "UPDATE")
def remove_tag(file_id, tag_id):
    catalog.remove_tag(file_id, tag_id)
    _audit(AuditAction.UPDATE, "asset_file", file_id, {"removedTagId": tag_id})
    return jsonify({"msg": "Tag removed"}), 200


@asset_bp.route("/files/<int:file_id>/versions", methods=["GET"])
@require_asset_permission("FILE", "READ")
def list_versions(file_id):
    versions = catalog.versions_visible_to(file_id, current_principal())
    return jsonify([v.to_dict() for v in versions]), 200


@asset_bp.route("/files/<int:file_id>/download", methods=["GET"])
@require_asset_permission("FILE", "READ")
def download_file(file_id):
    path, download_name = catalog.open_download(file_id, current_principal())
    _audit(AuditAction.DOWNLOAD, "asset_file", file_id)
    return send_file(str(path), as_attachment=True, download_name=download_name)


@asset_bp.route("/version-groups/<group_id>/effective", methods=["GET"])
@require_asset_permission("FILE", "READ")
def effective_version(group_id):
    return jsonify(catalog.effective_version(group_id, current_principal()).to_dict()), 200
