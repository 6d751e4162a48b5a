"""Read-only queries over version groups.

A version group is addressed by its effective id: the stored
``version_group_id`` or, for rows that were never grouped, the row's own id.
"""
from typing import List, Optional, Union
from sqlalchemy import func
from extensions import db
from models.asset_file import AssetFile
from models.version_group import VersionGroupId
from services.errors import NotFoundError
from utils.performance_logger import performance_monitor

GroupRef = Union[VersionGroupId, str, int]


def _group_value(group_id: GroupRef) -> str:
    if isinstance(group_id, VersionGroupId):
        return group_id.value
    return VersionGroupId.parse(group_id).value


def _group_query(group_id: GroupRef, include_archived: bool = True):
    query = AssetFile.query.filter(
        AssetFile.effective_group_id == _group_value(group_id),
        AssetFile.is_deleted.is_(False),
    )
    if not include_archived:
        query = query.filter(AssetFile.is_archived.is_(False))
    return query


@performance_monitor(operation_name="versions_of", operation_type="query")
def versions_of(group_id: GroupRef, include_archived: bool = True) -> List[AssetFile]:
    return _group_query(group_id, include_archived).order_by(
        AssetFile.version_number.asc(), AssetFile.id.asc()
    ).all()


def versions_for_title(folder_id: int, title: str) -> List[AssetFile]:
    return AssetFile.query.filter(
        AssetFile.folder_id == folder_id,
        AssetFile.title == title,
        AssetFile.is_deleted.is_(False),
    ).order_by(AssetFile.version_number.asc(), AssetFile.created_at.asc(), AssetFile.id.asc()).all()


def versions_for_file(file_id: int) -> List[AssetFile]:
    asset = db.session.get(AssetFile, file_id)
    if asset is None or asset.is_deleted:
        raise NotFoundError("File not found")
    return versions_of(VersionGroupId.of(asset))


@performance_monitor(operation_name="latest_version", operation_type="query")
def latest(group_id: GroupRef, include_archived: bool = False) -> Optional[AssetFile]:
    """Highest version of the group; archived rows only count when asked for."""
    return _group_query(group_id, include_archived).order_by(
        AssetFile.version_number.desc(), AssetFile.id.desc()
    ).first()


def latest_version_number(group_id: GroupRef) -> int:
    """MAX(version_number) over non-deleted rows, 0 for an empty group."""
    value = db.session.query(func.max(AssetFile.version_number)).filter(
        AssetFile.effective_group_id == _group_value(group_id),
        AssetFile.is_deleted.is_(False),
    ).scalar()
    return value or 0


def group_in_folder(group_id: GroupRef, folder_id: int) -> bool:
    return _group_query(group_id).filter(AssetFile.folder_id == folder_id).first() is not None


def current_version_number(group_id: GroupRef) -> int:
    """
    Number shown as a group's "latest": that of latest(group), so archived rows
    are skipped unless every row of the group is archived. 0 for an empty group.

    Not for numbering new uploads; those use latest_version_number.
    """
    row = latest(group_id) or latest(group_id, include_archived=True)
    return row.version_number if row is not None else 0
