import json
import logging
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple
from extensions import db
from models.asset_file import AUDIENCE_LEVELS, PARTNER_VISIBLE_AUDIENCES, AssetFile, AssetFileTag
from models.business_unit import BusinessUnit
from models.folder import Folder
from models.product import Product
from models.version_group import VersionGroupId
from services import version_resolver
from services.assignment_service import AssignmentService
from services.errors import AssetServiceError, NotFoundError, ValidationError
from services.file_storage_service import FileStorageService
from services.file_validation_service import FileValidationService
from utils.performance_logger import performance_monitor

logger = logging.getLogger(__name__)

SORT_ORDERS = ("newest", "oldest")
SEARCH_MIN_LENGTH = 2
SEARCH_MAX_GROUPS = 20
MAX_TAGS = 50
MAX_BULK_FILES = 100

_LEVELS = {
    "bu": (BusinessUnit, None, None, "Business unit"),
    "product": (Product, BusinessUnit, "business_unit_id", "Product"),
    "folder": (Folder, Product, "product_id", "Folder"),
}


class CatalogService:
    """Business unit / product / folder / file operations on the asset hierarchy"""

    def __init__(self, assignments: AssignmentService = None):
        self.assignments = assignments or AssignmentService()

    # ------------------------------------------------------------------
    # hierarchy
    # ------------------------------------------------------------------

    @staticmethod
    def _get_live(model, row_id, label: str):
        row = db.session.get(model, row_id) if row_id is not None else None
        if row is None or row.is_deleted:
            raise NotFoundError(f"{label} not found")
        return row

    @staticmethod
    def _require_name(name) -> str:
        cleaned = FileValidationService.clean_text(name) if name is not None else ""
        if not cleaned:
            raise ValidationError("Name is required", 'NAME_REQUIRED')
        if len(cleaned) > 200:
            raise ValidationError("Name is too long", 'NAME_TOO_LONG')
        return cleaned

    def _create_node(self, kind: str, parent_id, name, description, actor_id):
        model, parent_model, parent_field, _ = _LEVELS[kind]
        fields = {
            "name": self._require_name(name),
            "description": FileValidationService.clean_text(description),
            "created_by": actor_id,
        }
        if parent_model is not None:
            parent = self._get_live(parent_model, parent_id, _LEVELS[self._parent_kind(kind)][3])
            fields[parent_field] = parent.id

        node = model(**fields)
        try:
            db.session.add(node)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return node

    @staticmethod
    def _parent_kind(kind: str) -> str:
        return {"product": "bu", "folder": "product"}[kind]

    def _update_node(self, kind: str, node_id, name=None, description=None):
        model, _, _, label = _LEVELS[kind]
        node = self._get_live(model, node_id, label)
        if name is not None:
            node.name = self._require_name(name)
        if description is not None:
            node.description = FileValidationService.clean_text(description)
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return node

    def _delete_node(self, kind: str, node_id):
        model, _, _, label = _LEVELS[kind]
        node = self._get_live(model, node_id, label)
        node.is_deleted = True
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return node

    def create_business_unit(self, name, description=None, actor_id=None) -> BusinessUnit:
        return self._create_node("bu", None, name, description, actor_id)

    def create_product(self, business_unit_id, name, description=None, actor_id=None) -> Product:
        return self._create_node("product", business_unit_id, name, description, actor_id)

    def create_folder(self, product_id, name, description=None, actor_id=None) -> Folder:
        return self._create_node("folder", product_id, name, description, actor_id)

    def update_business_unit(self, bu_id, name=None, description=None) -> BusinessUnit:
        return self._update_node("bu", bu_id, name, description)

    def update_product(self, product_id, name=None, description=None) -> Product:
        return self._update_node("product", product_id, name, description)

    def update_folder(self, folder_id, name=None, description=None) -> Folder:
        return self._update_node("folder", folder_id, name, description)

    def delete_business_unit(self, bu_id) -> BusinessUnit:
        return self._delete_node("bu", bu_id)

    def delete_product(self, product_id) -> Product:
        return self._delete_node("product", product_id)

    def delete_folder(self, folder_id) -> Folder:
        return self._delete_node("folder", folder_id)

    def list_children(self, parent_kind: Optional[str] = None, parent_id=None) -> List[Any]:
        """
        Non-deleted children ordered by name: business units when parent_kind is None,
        products of a business unit ("bu") or folders of a product ("product").
        """
        if parent_kind is None:
            query = BusinessUnit.query
            model = BusinessUnit
        elif parent_kind == "bu":
            self._get_live(BusinessUnit, parent_id, "Business unit")
            query = Product.query.filter(Product.business_unit_id == parent_id)
            model = Product
        elif parent_kind == "product":
            self._get_live(Product, parent_id, "Product")
            query = Folder.query.filter(Folder.product_id == parent_id)
            model = Folder
        else:
            raise ValueError(f"Unknown parent kind: {parent_kind}")
        return query.filter(model.is_deleted.is_(False)).order_by(model.name.asc(), model.id.asc()).all()

    # ------------------------------------------------------------------
    # files
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_audience(value) -> str:
        if value in (None, ""):
            return "Internal"
        if value not in AUDIENCE_LEVELS:
            raise ValidationError(
                f"audienceLevel must be one of {', '.join(AUDIENCE_LEVELS)}", 'INVALID_AUDIENCE_LEVEL'
            )
        return value

    @staticmethod
    def _parse_tags(tags) -> Optional[List[str]]:
        """Accept a list or a JSON encoded array (multipart forms)."""
        if tags is None or tags == "":
            return None
        if isinstance(tags, str):
            try:
                tags = json.loads(tags)
            except ValueError:
                raise ValidationError("tags must be a JSON array", 'INVALID_TAGS')
        if not isinstance(tags, list) or len(tags) > MAX_TAGS:
            raise ValidationError("tags must be a JSON array", 'INVALID_TAGS')

        names = []
        for tag in tags:
            if not isinstance(tag, str):
                raise ValidationError("tags must be strings", 'INVALID_TAGS')
            cleaned = FileValidationService.clean_text(tag)[:100]
            if cleaned and cleaned not in names:
                names.append(cleaned)
        return names

    @staticmethod
    def _parse_bool(value, field: str) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("true", "false", "1", "0"):
            return value.lower() in ("true", "1")
        raise ValidationError(f"{field} must be a boolean", 'INVALID_BOOLEAN')

    def _resolve_target_group(self, folder: Folder, raw_group_id) -> Tuple[Optional[VersionGroupId], int]:
        """Group the new row joins and its version number; (None, 1) mints a new group."""
        if raw_group_id in (None, ""):
            return None, 1
        try:
            group = VersionGroupId.parse(raw_group_id)
        except ValueError as e:
            raise ValidationError(str(e), 'INVALID_VERSION_GROUP')

        if not version_resolver.group_in_folder(group, folder.id):
            raise ValidationError("Version group not found in this folder", 'VERSION_GROUP_NOT_FOUND')

        # rows created before grouping existed: their id is the group, stamp it
        if group.value.isdigit():
            legacy = AssetFile.query.filter(
                AssetFile.id == int(group.value),
                AssetFile.folder_id == folder.id,
                AssetFile.version_group_id.is_(None),
                AssetFile.is_deleted.is_(False),
            ).first()
            if legacy is not None:
                legacy.version_group_id = str(legacy.id)
                logger.info(f"Upgraded legacy file {legacy.id} to version group {legacy.id}")

        return group, version_resolver.latest_version_number(group) + 1

    @performance_monitor(operation_name="create_file_version", operation_type="bulk")
    def create_file_version(self, folder_id, upload, title=None, description=None, audience_level=None,
                            update_version_group_id=None, tags=None, actor_id=None) -> AssetFile:
        """
        Store an upload as a new file, or as the next version of an existing group.

        Everything is validated before the binary is written. The new row gets
        max(version_number)+1 of the group it joins, or starts a group of its own
        whose id is the row's id.
        """
        folder = self._get_live(Folder, folder_id, "Folder")
        file_type, file_size = FileValidationService().validate_upload(upload)
        audience_level = self._parse_audience(audience_level)
        tag_names = self._parse_tags(tags)
        title = FileValidationService.clean_text(title) or Path(upload.filename).stem
        description = FileValidationService.clean_text(description)

        group, version_number = self._resolve_target_group(folder, update_version_group_id)

        storage = FileStorageService()
        relative_path = None
        try:
            stored_name, relative_path = storage.save_file(upload, folder)
            asset = AssetFile(
                folder_id=folder.id,
                title=title[:255],
                original_file_name=upload.filename,
                stored_file_name=stored_name,
                storage_path=relative_path,
                file_type=file_type,
                file_size=file_size,
                description=description,
                uploaded_by=actor_id,
                audience_level=audience_level,
                version_group_id=group.value if group else None,
                version_number=version_number,
            )
            db.session.add(asset)
            db.session.flush()
            if group is None:
                asset.version_group_id = str(asset.id)
            for name in tag_names or []:
                asset.tags.append(AssetFileTag(tag_name=name))
            db.session.commit()
        except Exception:
            db.session.rollback()
            if relative_path:
                storage.delete_file(relative_path)
            raise

        logger.info(f"Stored file {asset.id} v{asset.version_number} in group {asset.version_group_id}")
        return asset

    def create_files_bulk(self, folder_id, uploads, description=None, audience_level=None,
                          actor_id=None) -> Tuple[List[AssetFile], List[Dict[str, str]]]:
        """
        Store several uploads as new documents (version 1 of their own group each).

        Files are independent: one rejected file does not stop the others.

        Returns:
            Tuple of (created rows, [{filename, error}] for the rejected files)
        """
        self.get_folder(folder_id)
        uploads = [u for u in uploads or [] if u is not None and u.filename]
        if not uploads:
            raise ValidationError("No files uploaded", 'FILE_REQUIRED')
        if len(uploads) > MAX_BULK_FILES:
            raise ValidationError(f"At most {MAX_BULK_FILES} files per upload", 'TOO_MANY_FILES')
        audience_level = self._parse_audience(audience_level)

        created, errors = [], []
        for upload in uploads:
            try:
                created.append(self.create_file_version(
                    folder_id, upload, description=description, audience_level=audience_level, actor_id=actor_id,
                ))
            except AssetServiceError as e:
                logger.warning(f"Bulk upload skipped {upload.filename}: {e.message}")
                errors.append({'filename': upload.filename, 'error': e.message})
        return created, errors

    def get_folder(self, folder_id) -> Folder:
        return self._get_live(Folder, folder_id, "Folder")

    def get_file(self, file_id) -> AssetFile:
        return self._get_live(AssetFile, file_id, "File")

    def update_file_metadata(self, file_id, patch: Dict[str, Any]) -> AssetFile:
        asset = self.get_file(file_id)
        if not isinstance(patch, dict):
            raise ValidationError("Invalid payload", 'INVALID_PAYLOAD')

        if 'title' in patch:
            title = FileValidationService.clean_text(patch['title'])
            if not title:
                raise ValidationError("Title cannot be empty", 'TITLE_REQUIRED')
            asset.title = title[:255]
        if 'description' in patch:
            asset.description = FileValidationService.clean_text(patch['description'])
        if 'audienceLevel' in patch:
            asset.audience_level = self._parse_audience(patch['audienceLevel'])
        if 'isArchived' in patch:
            asset.is_archived = self._parse_bool(patch['isArchived'], 'isArchived')
        if 'tags' in patch:
            names = self._parse_tags(patch['tags']) or []
            existing = {tag.tag_name: tag for tag in asset.tags}
            asset.tags = [existing.get(name) or AssetFileTag(tag_name=name) for name in names]

        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return asset

    def add_tag(self, file_id, tag_name) -> AssetFileTag:
        asset = self.get_file(file_id)
        cleaned = FileValidationService.clean_text(tag_name) if isinstance(tag_name, str) else None
        if not cleaned:
            raise ValidationError("tagName is required", 'TAG_REQUIRED')
        existing = AssetFileTag.query.filter_by(file_id=asset.id, tag_name=cleaned[:100]).first()
        if existing is not None:
            return existing
        tag = AssetFileTag(file_id=asset.id, tag_name=cleaned[:100])
        try:
            db.session.add(tag)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return tag

    def remove_tag(self, file_id, tag_id) -> None:
        asset = self.get_file(file_id)
        tag = AssetFileTag.query.filter_by(id=tag_id, file_id=asset.id).first()
        if tag is None:
            raise NotFoundError("Tag not found")
        try:
            db.session.delete(tag)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    def archive_file(self, file_id, archived: bool = True) -> AssetFile:
        asset = self.get_file(file_id)
        asset.is_archived = bool(archived)
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return asset

    def delete_file(self, file_id) -> AssetFile:
        asset = self.get_file(file_id)
        asset.is_deleted = True
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return asset

    def open_download(self, file_id, principal=None) -> Tuple[Path, str]:
        """Absolute path of the stored binary and the name to serve it as."""
        asset = self.get_visible_file(file_id, principal) if principal else self.get_file(file_id)
        storage = FileStorageService()
        if not storage.exists(asset.storage_path):
            logger.error(f"Stored binary missing for file {asset.id}: {asset.storage_path}")
            raise NotFoundError("File content not found", 'BLOB_NOT_FOUND')
        return storage.resolve(asset.storage_path), asset.original_file_name

    # ------------------------------------------------------------------
    # listing
    # ------------------------------------------------------------------

    @staticmethod
    def _visible(row: AssetFile, principal, pinned_ids: Iterable[int], include_archived: bool) -> bool:
        if row.id in pinned_ids:
            return True
        if row.is_archived and not include_archived:
            return False
        if principal.is_partner and row.audience_level not in PARTNER_VISIBLE_AUDIENCES:
            return False
        return True

    @performance_monitor(operation_name="list_files", operation_type="query")
    def list_files(self, folder_id, principal, sort: str = "newest", include_archived: bool = False,
                   show_all_versions: bool = False) -> List[Dict[str, Any]]:
        """
        Files of a folder, one row per version group: the principal's pinned
        revision when there is one, otherwise the group's latest visible revision.

        Partners only see Partner/EndUser audiences plus whatever is pinned to
        them, and always get the collapsed view.
        """
        if sort not in SORT_ORDERS:
            raise ValidationError(f"sort must be one of {', '.join(SORT_ORDERS)}", 'INVALID_SORT')
        folder = self._get_live(Folder, folder_id, "Folder")

        rows = AssetFile.query.filter(
            AssetFile.folder_id == folder.id,
            AssetFile.is_deleted.is_(False),
        ).all()
        pins = self.assignments.pins_by_group(principal.user_id)
        pinned_ids = set(pins.values())

        # same rule as version_resolver.current_version_number, over rows already loaded
        latest_numbers: Dict[str, int] = {}
        archived_numbers: Dict[str, int] = defaultdict(int)
        for row in rows:
            gid = row.effective_group_id
            if row.is_archived:
                archived_numbers[gid] = max(archived_numbers[gid], row.version_number)
            else:
                latest_numbers[gid] = max(latest_numbers.get(gid, 0), row.version_number)
        for gid, number in archived_numbers.items():
            latest_numbers.setdefault(gid, number)

        visible = [row for row in rows if self._visible(row, principal, pinned_ids, include_archived)]

        if show_all_versions and not principal.is_partner:
            selected = visible
        else:
            groups: Dict[str, List[AssetFile]] = defaultdict(list)
            for row in visible:
                groups[row.effective_group_id].append(row)
            selected = []
            for gid, members in groups.items():
                pinned = next((m for m in members if m.id == pins.get(gid)), None)
                selected.append(pinned or max(members, key=lambda m: (m.version_number, m.id)))

        selected.sort(key=lambda r: (r.created_at, r.id), reverse=(sort == "newest"))

        results = []
        for row in selected:
            entry = row.to_dict()
            entry['isPinned'] = pins.get(row.effective_group_id) == row.id
            entry['latestVersion'] = latest_numbers[row.effective_group_id]
            results.append(entry)
        return results

    def get_visible_file(self, file_id, principal) -> AssetFile:
        """get_file, hiding rows a partner may not see behind a 404."""
        asset = self.get_file(file_id)
        if principal.is_partner:
            pinned_ids = self.assignments.pinned_file_ids(principal.user_id)
            if not self._visible(asset, principal, pinned_ids, include_archived=True):
                raise NotFoundError("File not found")
        return asset

    def versions_visible_to(self, file_id, principal) -> List[AssetFile]:
        """Revisions of the file's group in ascending order."""
        self.get_visible_file(file_id, principal)
        versions = version_resolver.versions_for_file(file_id)
        if not principal.is_partner:
            return versions
        pinned_ids = self.assignments.pinned_file_ids(principal.user_id)
        return [row for row in versions if self._visible(row, principal, pinned_ids, include_archived=True)]

    def effective_version(self, group_id, principal) -> AssetFile:
        """Revision the principal should see for a group (pin, else latest)."""
        try:
            group = VersionGroupId.parse(group_id)
        except ValueError as e:
            raise ValidationError(str(e), 'INVALID_VERSION_GROUP')
        resolved = self.assignments.resolve_for_user(principal.user_id, group)
        if resolved is None:
            raise NotFoundError("Version group not found")
        pinned_ids = self.assignments.pinned_file_ids(principal.user_id)
        if not self._visible(resolved, principal, pinned_ids, include_archived=True):
            raise NotFoundError("Version group not found")
        return resolved

    @staticmethod
    def _like_pattern(text: str) -> str:
        escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        return f"%{escaped}%"

    def search_groups(self, query: str) -> List[Dict[str, Any]]:
        """
        Title search returning one entry per version group, sorted by title.

        The query is matched literally (% and _ are not wildcards). At most
        SEARCH_MAX_GROUPS groups are returned, the first ones in title order.
        """
        q = (query or "").strip()
        if len(q) < SEARCH_MIN_LENGTH:
            return []

        rows = AssetFile.query.filter(
            AssetFile.title.ilike(self._like_pattern(q), escape="\\"),
            AssetFile.is_deleted.is_(False),
        ).all()

        groups: Dict[str, List[AssetFile]] = defaultdict(list)
        for row in rows:
            groups[row.effective_group_id].append(row)

        results = []
        for gid, members in groups.items():
            live = [m for m in members if not m.is_archived] or members
            latest = max(live, key=lambda m: (m.version_number, m.id))
            results.append({
                'versionGroupId': gid,
                'title': latest.title,
                'folderId': latest.folder_id,
                'latestId': latest.id,
                'latestVersion': latest.version_number,
                'versionCount': len(members),
            })
        results.sort(key=lambda r: (r['title'].lower(), r['versionGroupId']))
        return results[:SEARCH_MAX_GROUPS]
