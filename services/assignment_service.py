import logging
from typing import Any, Dict, List, Optional, Set
from extensions import db
from models.asset_file import AssetFile
from models.asset_file_assignment import AssetFileAssignment
from models.user import User
from models.version_group import VersionGroupId
from services import version_resolver
from services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# sentinel accepted from clients for "back to latest"
REVERT_SENTINELS = (None, -1, "-1", "")


class AssignmentService:
    """Per-user pins on a specific revision of a version group"""

    def assign(self, user_id: int, asset_file_id: Optional[Any], version_group_id: Any,
               assigned_by: Optional[int] = None) -> Optional[AssetFileAssignment]:
        """
        Pin a user to one revision, or revert to latest when asset_file_id is None/-1.

        Returns:
            The new assignment, or None after a revert

        Raises:
            ValidationError: bad group id, or a file outside the group
            NotFoundError: unknown user
        """
        try:
            group = VersionGroupId.parse(version_group_id)
        except ValueError as e:
            raise ValidationError(str(e), 'INVALID_VERSION_GROUP')

        if db.session.get(User, user_id) is None:
            raise NotFoundError("User not found", 'USER_NOT_FOUND')

        if asset_file_id in REVERT_SENTINELS:
            return self._revert(user_id, group)

        try:
            asset_file_id = int(asset_file_id)
        except (TypeError, ValueError):
            raise ValidationError("assetFileId must be an integer", 'INVALID_FILE_ID')

        asset = db.session.get(AssetFile, asset_file_id)
        if asset is None or asset.is_deleted:
            raise ValidationError("File does not exist", 'FILE_NOT_FOUND')
        if VersionGroupId.of(asset) != group:
            raise ValidationError("File does not belong to this version group", 'FILE_NOT_IN_GROUP')

        try:
            # delete is emitted immediately so the insert never sees the old pin
            AssetFileAssignment.query.filter_by(
                user_id=user_id, version_group_id=group.value
            ).delete(synchronize_session=False)
            assignment = AssetFileAssignment(
                user_id=user_id,
                asset_file_id=asset.id,
                version_group_id=group.value,
                assigned_by=assigned_by,
            )
            db.session.add(assignment)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info(f"User {user_id} pinned to file {asset.id} in group {group}")
        return assignment

    def _revert(self, user_id: int, group: VersionGroupId) -> None:
        try:
            deleted = AssetFileAssignment.query.filter_by(
                user_id=user_id, version_group_id=group.value
            ).delete(synchronize_session=False)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        logger.info(f"User {user_id} reverted to latest in group {group} ({deleted} pin removed)")
        return None

    def resolve_for_user(self, user_id: int, version_group_id: Any,
                         include_archived: bool = False) -> Optional[AssetFile]:
        """The pinned revision when one exists, otherwise the group's latest."""
        group = VersionGroupId.parse(version_group_id)
        pin = AssetFileAssignment.query.filter_by(user_id=user_id, version_group_id=group.value).first()
        if pin is not None:
            pinned = db.session.get(AssetFile, pin.asset_file_id)
            if pinned is not None and not pinned.is_deleted:
                return pinned
        return version_resolver.latest(group, include_archived=include_archived)

    def pins_by_group(self, user_id: int) -> Dict[str, int]:
        rows = AssetFileAssignment.query.filter_by(user_id=user_id).all()
        return {row.version_group_id: row.asset_file_id for row in rows}

    def pinned_file_ids(self, user_id: int) -> Set[int]:
        return set(self.pins_by_group(user_id).values())

    def list_assignments(self, user_id: int) -> List[Dict[str, Any]]:
        if db.session.get(User, user_id) is None:
            raise NotFoundError("User not found", 'USER_NOT_FOUND')

        rows = db.session.query(AssetFileAssignment, AssetFile).join(
            AssetFile, AssetFile.id == AssetFileAssignment.asset_file_id
        ).filter(
            AssetFileAssignment.user_id == user_id
        ).order_by(AssetFileAssignment.assigned_at.desc()).all()

        results = []
        for assignment, asset in rows:
            entry = assignment.to_dict()
            entry.update({
                'title': asset.title,
                'originalFileName': asset.original_file_name,
                'versionNumber': asset.version_number,
                'latestVersion': version_resolver.current_version_number(assignment.version_group_id),
            })
            results.append(entry)
        return results
