"""
Offline repair of version groups.

Two passes, both idempotent:

1. Merge: a logical document (same folder and title) whose revisions ended up
   in several groups is folded into one. The oldest row's group wins, versions
   are renumbered by creation order and pins follow the merge.
2. Renumber: any group whose numbers are not exactly 1..N in creation order is
   renumbered.

Each document or group is rewritten in its own transaction.
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple
from sqlalchemy import func
from extensions import db
from models.asset_file import AssetFile
from models.asset_file_assignment import AssetFileAssignment
from utils.performance_logger import PerformanceTracker, performance_monitor

logger = logging.getLogger(__name__)


@dataclass
class RepairReport:
    dry_run: bool = False
    merged: List[Dict[str, Any]] = field(default_factory=list)
    renumbered: List[Dict[str, Any]] = field(default_factory=list)
    failed: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.merged or self.renumbered)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'dryRun': self.dry_run,
            'merged': self.merged,
            'renumbered': self.renumbered,
            'failed': self.failed,
        }


def _chronological(query):
    return query.order_by(AssetFile.created_at.asc(), AssetFile.id.asc()).all()


class VersionRepairService:
    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run

    def find_split_documents(self) -> List[Tuple[int, str]]:
        """(folder_id, title) pairs whose live rows carry more than one effective group id."""
        rows = db.session.query(AssetFile.folder_id, AssetFile.title).filter(
            AssetFile.is_deleted.is_(False)
        ).group_by(
            AssetFile.folder_id, AssetFile.title
        ).having(
            func.count(func.distinct(AssetFile.effective_group_id)) > 1
        ).order_by(AssetFile.folder_id, AssetFile.title).all()
        return [(folder_id, title) for folder_id, title in rows]

    def _finish(self):
        if self.dry_run:
            db.session.rollback()
        else:
            db.session.commit()

    def merge_document(self, folder_id: int, title: str) -> Dict[str, Any]:
        rows = _chronological(AssetFile.query.filter(
            AssetFile.folder_id == folder_id,
            AssetFile.title == title,
            AssetFile.is_deleted.is_(False),
        ))
        master = rows[0].effective_group_id
        merged_ids = sorted({row.effective_group_id for row in rows} - {master})
        title_ids = {row.id for row in rows}

        # every touched group is rewritten here, including members under another title
        members: Dict[str, List[AssetFile]] = OrderedDict([(master, list(rows))])
        for group_id in [master] + merged_ids:
            members.setdefault(group_id, []).extend(AssetFile.query.filter(
                AssetFile.effective_group_id == group_id,
                AssetFile.is_deleted.is_(False),
                AssetFile.id.notin_(title_ids),
            ).all())

        renumbered = 0
        for group_id, group_rows in members.items():
            group_rows.sort(key=lambda r: (r.created_at, r.id))
            for position, row in enumerate(group_rows, start=1):
                regroup = row.id in title_ids and row.version_group_id != group_id
                if regroup or row.version_number != position:
                    if regroup:
                        row.version_group_id = group_id
                    row.version_number = position
                    renumbered += 1

        # newest pin per user survives; the rest would break (user, group) uniqueness
        pins = AssetFileAssignment.query.filter(
            AssetFileAssignment.asset_file_id.in_([row.id for row in rows])
        ).order_by(AssetFileAssignment.assigned_at.desc(), AssetFileAssignment.id.desc()).all()
        master_pins = AssetFileAssignment.query.filter(
            AssetFileAssignment.version_group_id == master
        ).order_by(AssetFileAssignment.assigned_at.desc(), AssetFileAssignment.id.desc()).all()

        kept: Dict[int, AssetFileAssignment] = OrderedDict()
        dropped = []
        for pin in sorted({p.id: p for p in pins + master_pins}.values(),
                          key=lambda p: (p.assigned_at, p.id), reverse=True):
            if pin.user_id in kept:
                dropped.append(pin)
            else:
                kept[pin.user_id] = pin

        for pin in dropped:
            db.session.delete(pin)
        db.session.flush()

        moved = 0
        for pin in kept.values():
            if pin.version_group_id != master:
                pin.version_group_id = master
                moved += 1

        return {
            'folderId': folder_id,
            'title': title,
            'masterGroupId': master,
            'mergedGroupIds': merged_ids,
            'rowsRewritten': renumbered,
            'pinsMoved': moved,
            'pinsDropped': len(dropped),
        }

    def find_misnumbered_groups(self) -> List[str]:
        """Groups whose version numbers are not 1..N in creation order."""
        rows = db.session.query(
            AssetFile.effective_group_id, AssetFile.version_number
        ).filter(
            AssetFile.is_deleted.is_(False)
        ).order_by(
            AssetFile.effective_group_id, AssetFile.created_at.asc(), AssetFile.id.asc()
        ).all()

        misnumbered = []
        position, current = 0, None
        for group_id, version_number in rows:
            if group_id != current:
                current, position = group_id, 0
            position += 1
            if version_number != position and (not misnumbered or misnumbered[-1] != group_id):
                misnumbered.append(group_id)
        return misnumbered

    def renumber_group(self, group_id: str) -> Dict[str, Any]:
        rows = _chronological(AssetFile.query.filter(
            AssetFile.effective_group_id == group_id,
            AssetFile.is_deleted.is_(False),
        ))
        changes = []
        for position, row in enumerate(rows, start=1):
            if row.version_number != position:
                changes.append({'fileId': row.id, 'from': row.version_number, 'to': position})
                row.version_number = position
        return {'versionGroupId': group_id, 'changes': changes}

    @performance_monitor(operation_name="repair_version_groups", operation_type="bulk")
    def run(self) -> RepairReport:
        report = RepairReport(dry_run=self.dry_run)

        for folder_id, title in self.find_split_documents():
            try:
                with PerformanceTracker(f"merge_document folder={folder_id}", log_threshold_ms=250.0):
                    result = self.merge_document(folder_id, title)
                self._finish()
            except Exception as e:
                db.session.rollback()
                logger.error(f"Failed to merge version groups for folder {folder_id} title {title!r}: {str(e)}")
                report.failed.append({'folderId': folder_id, 'title': title, 'error': str(e)})
                continue
            logger.info(
                f"Merged {result['mergedGroupIds']} into group {result['masterGroupId']} "
                f"(folder {folder_id}, {title!r})"
            )
            report.merged.append(result)

        # a dry run left the merges uncommitted, so renumbering is judged on current data
        for group_id in self.find_misnumbered_groups():
            try:
                result = self.renumber_group(group_id)
                self._finish()
            except Exception as e:
                db.session.rollback()
                logger.error(f"Failed to renumber version group {group_id}: {str(e)}")
                report.failed.append({'versionGroupId': group_id, 'error': str(e)})
                continue
            if result['changes']:
                logger.info(f"Renumbered version group {group_id}: {result['changes']}")
                report.renumbered.append(result)

        return report


def repair_version_groups(dry_run: bool = False) -> RepairReport:
    return VersionRepairService(dry_run=dry_run).run()
