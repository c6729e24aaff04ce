"""
Shift rules: spreadsheet import and single create.

Imports never overwrite an existing shift. A row whose name matches a saved
shift, or an earlier row of the same file, is skipped.
"""
import pandas as pd
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Any, Iterable, Optional, Set, Union

from ..core.audit import AuditLogger
from ..core.exceptions import RecordNotFoundError, ValidationError
from ..core.repositories import ShiftsRepository
from ..core.upload_manager import UploadManager
from ..core.utils import fold_name, setup_logging, to_decimal

REQUIRED_FIELDS = ("name", "start_time", "end_time")
GRACE_FIELDS = ("in_grace_period", "out_grace_period", "start_reminder", "end_reminder")

@dataclass
class ShiftImportResult:
    accepted: List[Dict[str, Any]] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    rejected: List[Dict[str, Any]] = field(default_factory=list)

    def summary(self) -> Dict[str, Any]:
        return {
            'inserted': len(self.accepted),
            'skipped': len(self.skipped),
            'rejected': len(self.rejected),
            'skipped_names': list(self.skipped),
            'rejections': list(self.rejected),
        }

def _time_text(value: Any) -> Optional[str]:
    """Spreadsheet times may arrive as time/datetime objects or text."""
    if value is None:
        return None
    if hasattr(value, 'strftime'):
        return value.strftime('%H:%M')
    text = str(value).strip()
    return text or None

def _minutes(value: Any) -> int:
    return int(to_decimal(value))

def build_shift(row: Dict[str, Any]) -> Dict[str, Any]:
    """Normalized shift record from an import row or form input."""
    shift = {
        'name': str(row.get('name')).strip(),
        'status': str(row.get('status') or 'active').strip().lower(),
        'start_time': _time_text(row.get('start_time')),
        'end_time': _time_text(row.get('end_time')),
        'is_night_shift': bool(row.get('is_night_shift', False)),
    }
    for name in GRACE_FIELDS:
        shift[name] = _minutes(row.get(name))
    return shift

def missing_fields(row: Dict[str, Any]) -> List[str]:
    missing = []
    for name in REQUIRED_FIELDS:
        value = row.get(name)
        if name != 'name':
            value = _time_text(value)
        elif value is not None:
            value = str(value).strip()
        if not value:
            missing.append(name)
    return missing

def reconcile_shifts(rows: Iterable[Dict[str, Any]], existing_names: Set[str]) -> ShiftImportResult:
    """Split rows into accepted, skipped (name exists) and rejected (fields missing)."""
    seen = {fold_name(n) for n in existing_names}
    result = ShiftImportResult()

    for row_number, row in enumerate(rows, start=1):
        missing = missing_fields(row)
        if missing:
            result.rejected.append({'row': row_number, 'reason': 'missing fields', 'fields': missing})
            continue

        shift = build_shift(row)
        key = fold_name(shift['name'])
        if key in seen:
            result.skipped.append(shift['name'])
            continue
        seen.add(key)
        result.accepted.append(shift)
    return result

class ShiftManager:
    """Shift master maintenance for a tenant."""

    def __init__(self, tenant_id: str, data_dir: Optional[Union[str, Path]] = None):
        self.tenant_id = tenant_id
        self.repository = ShiftsRepository(tenant_id, data_dir)
        self.upload_manager = UploadManager(tenant_id, 'shifts')
        self.audit_logger = AuditLogger(tenant_id, data_dir)
        self.logger = setup_logging(tenant_id)

    def get_template(self) -> pd.DataFrame:
        """Get shift upload template with one example row."""
        return self.upload_manager.generate_template(with_example=True)

    def list_shifts(self) -> List[Dict[str, Any]]:
        return self.repository.load_data()

    def import_file(self, file_path: Union[str, Path], user_id: Optional[str] = None) -> Dict[str, Any]:
        """Import shifts; accepted rows are inserted in one batch."""
        upload = self.upload_manager.read_upload(file_path)
        filename = Path(file_path).name

        if upload.missing_columns:
            message = f"Missing required columns: {', '.join(upload.missing_columns)}"
            self.logger.warning("Shift import %s rejected: %s", filename, message)
            self.audit_logger.log_upload(
                entity_type='shifts', batch_id=upload.batch_id, file_hash=upload.file_hash,
                total_rows=0, accepted_rows=0, skipped_rows=0, rejected_rows=0,
                success=False, user_id=user_id, filename=filename, error_message=message
            )
            return {
                'success': False,
                'batch_id': upload.batch_id,
                'errors': [{'column': c, 'reason': 'missing column'} for c in upload.missing_columns],
                'inserted': 0, 'skipped': 0, 'rejected': 0,
            }

        result = reconcile_shifts(upload.rows, self.repository.existing_names())
        if result.accepted:
            self.repository.bulk_insert(result.accepted)

        for rejection in result.rejected:
            self.logger.warning("Shift row %s rejected: missing %s", rejection['row'], ', '.join(rejection['fields']))
        self.logger.info(
            "Shift import %s: %d inserted, %d skipped, %d rejected",
            filename, len(result.accepted), len(result.skipped), len(result.rejected)
        )
        self.audit_logger.log_upload(
            entity_type='shifts', batch_id=upload.batch_id, file_hash=upload.file_hash,
            total_rows=upload.total_rows, accepted_rows=len(result.accepted),
            skipped_rows=len(result.skipped), rejected_rows=len(result.rejected),
            success=True, user_id=user_id, filename=filename
        )

        summary = result.summary()
        summary.update({'success': True, 'batch_id': upload.batch_id, 'total_rows': upload.total_rows})
        return summary

    def create_shift(self, data: Dict[str, Any], user_id: Optional[str] = None) -> Dict[str, Any]:
        """Create one shift. Raises ValidationError on missing fields or a duplicate name."""
        missing = missing_fields(data)
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                [{'field': f, 'reason': 'required'} for f in missing]
            )
        shift = build_shift(data)
        if fold_name(shift['name']) in self.repository.existing_names():
            raise ValidationError(
                f"A shift named '{shift['name']}' already exists",
                [{'field': 'name', 'value': shift['name'], 'reason': 'duplicate'}]
            )
        self.repository.bulk_insert([shift])
        created = self.repository.find_by_key('name', shift['name'])
        self.audit_logger.log_data_change('shifts', 'create', str(created['id']), shift, user_id)
        self.logger.info("Shift created: %s", shift['name'])
        return created

    def toggle_status(self, shift_id: Any, user_id: Optional[str] = None) -> Dict[str, Any]:
        shift = self.repository.find_by_key('id', shift_id)
        if shift is None:
            raise RecordNotFoundError('shifts', shift_id)
        status = 'inactive' if shift.get('status') == 'active' else 'active'
        self.repository.bulk_upsert([{'id': shift_id, 'status': status}])
        self.audit_logger.log_data_change('shifts', 'update', str(shift_id), {'status': status}, user_id)
        return self.repository.find_by_key('id', shift_id)
