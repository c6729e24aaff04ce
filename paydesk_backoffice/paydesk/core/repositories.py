"""
Repository layer for data persistence with bulk operations and audit trails.
Provides consistent interface for all payroll entity data management.
"""
import json
from pathlib import Path
from typing import Dict, List, Any, Optional, Sequence, Tuple, Union
from datetime import datetime
from abc import ABC, abstractmethod

from .config import settings
from .exceptions import SetupRequiredError
from .utils import atomic_write_json, fold_name, normalize_code

COMPONENT_COLLECTIONS = ("earnings", "deductions", "employer_additional")

class BaseRepository(ABC):
    """Base repository with common data persistence patterns."""

    def __init__(self, tenant_id: str, entity_type: str, data_dir: Optional[Union[str, Path]] = None):
        self.tenant_id = tenant_id
        self.entity_type = entity_type

        # Setup directory structure
        self.data_dir = Path(data_dir or settings.DATA_DIR)
        self.entity_dir = self.data_dir / entity_type
        self.archive_dir = self.entity_dir / "archive"

        try:
            for dir_path in [self.entity_dir, self.archive_dir]:
                dir_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SetupRequiredError(entity_type, f"Data directory {self.data_dir} is not writable ({e}).") from e

    def _get_data_file(self) -> Path:
        """Get main data file path for tenant."""
        return self.entity_dir / f"{self.tenant_id}_{self.entity_type}.json"

    def _get_archive_file(self) -> Path:
        """Get archive file path with timestamp."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        return self.archive_dir / f"{self.tenant_id}_{self.entity_type}_{timestamp}.json"

    def load_data(self) -> List[Dict[str, Any]]:
        """Load current data from JSON file. A missing file is an empty collection."""
        data_file = self._get_data_file()
        if not data_file.exists():
            return []

        try:
            with open(data_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise SetupRequiredError(
                self.entity_type,
                f"{data_file.name} is not valid JSON ({e.msg}); restore it from {self.archive_dir}."
            ) from e
        except OSError as e:
            raise SetupRequiredError(self.entity_type, f"Cannot read {data_file} ({e}).") from e

        if not isinstance(data, list):
            raise SetupRequiredError(self.entity_type, f"{data_file.name} must hold a list of records.")
        return data

    def save_data(self, data: List[Dict[str, Any]], create_backup: bool = True) -> bool:
        """Save data to JSON file with optional backup. The write replaces the file atomically."""
        try:
            if create_backup and self._get_data_file().exists():
                self._create_backup()
            atomic_write_json(str(self._get_data_file()), data)
            return True
        except OSError as e:
            raise SetupRequiredError(self.entity_type, f"Cannot write {self._get_data_file()} ({e}).") from e

    def _create_backup(self) -> bool:
        """Create timestamped backup of current data."""
        current_data = self.load_data()
        if current_data:
            atomic_write_json(str(self._get_archive_file()), current_data)
        return True

    def get_count(self) -> int:
        """Get total record count."""
        return len(self.load_data())

    @abstractmethod
    def bulk_upsert(self, records: List[Dict[str, Any]], key_field: str) -> Dict[str, int]:
        """Bulk upsert records. Must be implemented by subclasses."""
        pass

    @abstractmethod
    def find_by_key(self, key_field: str, key_value: Any) -> Optional[Dict[str, Any]]:
        """Find single record by key field. Must be implemented by subclasses."""
        pass

    def _next_id(self, data: List[Dict[str, Any]]) -> int:
        ids = [int(r['id']) for r in data if isinstance(r.get('id'), (int, float)) or str(r.get('id', '')).isdigit()]
        return (max(ids) if ids else 0) + 1

class ComponentsRepository(BaseRepository):
    """Repository for one component master collection (earnings, deductions, employer_additional)."""

    def __init__(self, tenant_id: str, collection: str, data_dir: Optional[Union[str, Path]] = None):
        if collection not in COMPONENT_COLLECTIONS:
            raise ValueError(f"Unknown component collection: {collection}")
        self.collection = collection
        super().__init__(tenant_id, collection, data_dir)

    def bulk_upsert(self, records: List[Dict[str, Any]], key_field: str = "id") -> Dict[str, int]:
        """Bulk upsert components by id; records without an id get the next free one."""
        current_data = self.load_data()
        existing_map = {record.get(key_field): record for record in current_data}
        next_id = self._next_id(current_data)

        created = updated = 0

        for record in records:
            key_value = record.get(key_field)
            record['last_updated'] = datetime.now().isoformat()

            if key_value is not None and key_value in existing_map:
                existing_map[key_value].update(record)
                updated += 1
            else:
                if key_value is None:
                    record[key_field] = next_id
                    next_id += 1
                record['created_at'] = datetime.now().isoformat()
                existing_map[record[key_field]] = record
                created += 1

        updated_data = list(existing_map.values())
        self.save_data(updated_data)

        return {"created": created, "updated": updated, "total": len(updated_data)}

    def find_by_key(self, key_field: str, key_value: Any) -> Optional[Dict[str, Any]]:
        """Find component by key field."""
        for record in self.load_data():
            if record.get(key_field) == key_value:
                return record
        return None

    def find_by_name(self, name: str) -> Optional[Dict[str, Any]]:
        """Find component by trimmed, case-insensitive name."""
        key = fold_name(name)
        for record in self.load_data():
            if fold_name(record.get('name')) == key:
                return record
        return None

    def delete(self, component_id: Any) -> bool:
        data = self.load_data()
        remaining = [r for r in data if r.get('id') != component_id]
        if len(remaining) == len(data):
            return False
        self.save_data(remaining)
        return True

class EmployeesRepository(BaseRepository):
    """Snapshot of the employee directory, keyed by employee_code. Read-only for payroll."""

    def __init__(self, tenant_id: str, data_dir: Optional[Union[str, Path]] = None):
        super().__init__(tenant_id, "employees", data_dir)

    def bulk_upsert(self, records: List[Dict[str, Any]], key_field: str = "employee_code") -> Dict[str, int]:
        """Refresh directory rows from the directory service."""
        current_data = self.load_data()
        existing_map = {record.get(key_field): record for record in current_data}

        created = updated = 0

        for record in records:
            key_value = normalize_code(record.get(key_field))
            if not key_value:
                continue
            record[key_field] = key_value

            if key_value in existing_map:
                existing_map[key_value].update(record)
                updated += 1
            else:
                existing_map[key_value] = record
                created += 1

        updated_data = list(existing_map.values())
        self.save_data(updated_data)

        return {"created": created, "updated": updated, "total": len(updated_data)}

    def find_by_key(self, key_field: str, key_value: Any) -> Optional[Dict[str, Any]]:
        """Find employee by key field."""
        for record in self.load_data():
            if record.get(key_field) == key_value:
                return record
        return None

    def get_active_employees(self) -> List[Dict[str, Any]]:
        """Get all active employees."""
        data = self.load_data()
        return [record for record in data if record.get('status', 'Active') == 'Active']

    def known_codes(self) -> set:
        return {normalize_code(r.get('employee_code')) for r in self.load_data() if normalize_code(r.get('employee_code'))}

class SalaryStructuresRepository(BaseRepository):
    """One salary structure per employee_code. Upserts replace the row wholesale."""

    def __init__(self, tenant_id: str, data_dir: Optional[Union[str, Path]] = None):
        super().__init__(tenant_id, "salary_structures", data_dir)

    def bulk_upsert(self, records: List[Dict[str, Any]], key_field: str = "employee_code") -> Dict[str, int]:
        """Insert or replace structures in a single write; later records win on repeated keys."""
        current_data = self.load_data()
        existing_map = {record.get(key_field): record for record in current_data}
        next_id = self._next_id(current_data)

        created = updated = 0
        now = datetime.now().isoformat()

        for record in records:
            key_value = record.get(key_field)
            if not key_value:
                continue

            row = dict(record)
            row['last_updated'] = now
            previous = existing_map.get(key_value)

            if previous is not None:
                # Replace, keeping identity
                row['id'] = previous.get('id')
                row['created_at'] = previous.get('created_at', now)
                updated += 1
            else:
                row['id'] = next_id
                row['created_at'] = now
                next_id += 1
                created += 1
            existing_map[key_value] = row

        updated_data = list(existing_map.values())
        self.save_data(updated_data)

        return {"created": created, "updated": updated, "total": len(updated_data)}

    def find_by_key(self, key_field: str, key_value: Any) -> Optional[Dict[str, Any]]:
        """Find structure by key field."""
        for record in self.load_data():
            if record.get(key_field) == key_value:
                return record
        return None

    def get_by_code(self, employee_code: str) -> Optional[Dict[str, Any]]:
        return self.find_by_key('employee_code', normalize_code(employee_code))

class ShiftsRepository(BaseRepository):
    """Repository for shift rules."""

    def __init__(self, tenant_id: str, data_dir: Optional[Union[str, Path]] = None):
        super().__init__(tenant_id, "shifts", data_dir)

    def bulk_insert(self, records: List[Dict[str, Any]]) -> Dict[str, int]:
        """Insert new shifts in one write. Existing rows are never touched."""
        if not records:
            return {"created": 0, "total": self.get_count()}
        current_data = self.load_data()
        next_id = self._next_id(current_data)
        now = datetime.now().isoformat()

        for record in records:
            row = dict(record)
            row['id'] = next_id
            row['created_at'] = now
            next_id += 1
            current_data.append(row)

        self.save_data(current_data)
        return {"created": len(records), "total": len(current_data)}

    def bulk_upsert(self, records: List[Dict[str, Any]], key_field: str = "id") -> Dict[str, int]:
        """Update shifts by id; unknown ids are inserted."""
        current_data = self.load_data()
        existing_map = {record.get(key_field): record for record in current_data}
        inserts = []
        updated = 0

        for record in records:
            key_value = record.get(key_field)
            if key_value is not None and key_value in existing_map:
                existing_map[key_value].update(record)
                updated += 1
            else:
                inserts.append({k: v for k, v in record.items() if k != key_field})

        self.save_data(list(existing_map.values()))
        result = self.bulk_insert(inserts) if inserts else {"created": 0, "total": len(existing_map)}
        return {"created": result["created"], "updated": updated, "total": result["total"]}

    def find_by_key(self, key_field: str, key_value: Any) -> Optional[Dict[str, Any]]:
        """Find shift by key field."""
        for record in self.load_data():
            if record.get(key_field) == key_value:
                return record
        return None

    def existing_names(self) -> set:
        """Folded names of all persisted shifts."""
        return {fold_name(r.get('name')) for r in self.load_data() if fold_name(r.get('name'))}

class MonthlyRecordsRepository(BaseRepository):
    """Monthly salary records keyed by (employee_code, month, year)."""

    KEY_FIELDS: Tuple[str, str, str] = ("employee_code", "month", "year")

    def __init__(self, tenant_id: str, data_dir: Optional[Union[str, Path]] = None):
        super().__init__(tenant_id, "monthly_salary", data_dir)

    @classmethod
    def record_key(cls, record: Dict[str, Any]) -> Tuple[str, str, int]:
        year = record.get('year')
        try:
            year = int(year)
        except (TypeError, ValueError):
            pass
        return (normalize_code(record.get('employee_code')), str(record.get('month', '')).strip(), year)

    def bulk_upsert(self, records: List[Dict[str, Any]], key_field: Sequence[str] = KEY_FIELDS) -> Dict[str, int]:
        """Insert or replace monthly records on the composite key."""
        current_data = self.load_data()
        existing_map = {self.record_key(record): record for record in current_data}

        created = updated = 0
        now = datetime.now().isoformat()

        for record in records:
            key = self.record_key(record)
            if not key[0]:
                continue
            row = dict(record)
            row['updated_at'] = now
            if key in existing_map:
                updated += 1
            else:
                created += 1
            existing_map[key] = row

        updated_data = list(existing_map.values())
        self.save_data(updated_data)

        return {"created": created, "updated": updated, "total": len(updated_data)}

    def find_by_key(self, key_field: str, key_value: Any) -> Optional[Dict[str, Any]]:
        """Find monthly record by a single field."""
        for record in self.load_data():
            if record.get(key_field) == key_value:
                return record
        return None

    def find_record(self, employee_code: str, month: str, year: int) -> Optional[Dict[str, Any]]:
        wanted = self.record_key({'employee_code': employee_code, 'month': month, 'year': year})
        for record in self.load_data():
            if self.record_key(record) == wanted:
                return record
        return None

    def get_month(self, month: str, year: int) -> List[Dict[str, Any]]:
        """All records for a month/year, any status."""
        month_key = str(month).strip().lower()
        out = []
        for record in self.load_data():
            _, rec_month, rec_year = self.record_key(record)
            if rec_month.lower() == month_key and rec_year == int(year):
                out.append(record)
        return out
