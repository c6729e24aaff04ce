"""
Unified Upload Manager for spreadsheet imports across payroll modules.
Provides consistent pipeline: load -> resolve headers -> rows.
Business validation of rows is left to the importing module.
"""
import pandas as pd
import json
import hashlib
import uuid
from pathlib import Path
from typing import Dict, List, Any, Optional, Union
from dataclasses import dataclass, asdict, field
from datetime import datetime

from .schemas import SchemaRegistry
from .exceptions import UploadError

@dataclass
class LoadedUpload:
    """Rows read from an import file, keyed by schema field names."""
    batch_id: str
    file_hash: str
    timestamp: str
    rows: List[Dict[str, Any]]
    missing_columns: List[str] = field(default_factory=list)
    ignored_columns: List[str] = field(default_factory=list)

    @property
    def total_rows(self) -> int:
        return len(self.rows)

    def to_dict(self):
        return asdict(self)

class UploadManager:
    """
    Upload manager handling CSV/Excel/JSON files with header resolution
    against the entity's spreadsheet schema.
    """

    def __init__(self, tenant_id: str, entity_type: str):
        self.tenant_id = tenant_id
        self.entity_type = entity_type
        self.schema_registry = SchemaRegistry()

    def get_schema(self) -> Dict[str, Any]:
        """Get spreadsheet schema for the entity type."""
        return self.schema_registry.get_schema(self.entity_type)

    def generate_template(self, with_example: bool = False) -> pd.DataFrame:
        """Generate an import template from schema headers."""
        columns = self.get_schema().get('columns', {})
        headers = [col['header'] for col in columns.values()]
        if not with_example:
            return pd.DataFrame(columns=headers)
        sample = {col['header']: col.get('example', '') for col in columns.values()}
        return pd.DataFrame([sample]).reindex(columns=headers)

    def load_file(self, file_path: Union[str, Path]) -> pd.DataFrame:
        """Load data from CSV, Excel, or JSON file. The first sheet is used for workbooks."""
        file_path = Path(file_path)

        if not file_path.exists():
            raise UploadError(f"File not found: {file_path}")

        file_ext = file_path.suffix.lower()

        try:
            if file_ext == '.csv':
                # Codes like 00123 must keep their leading zeros
                df = pd.read_csv(file_path, dtype=str)
            elif file_ext in ['.xlsx', '.xls']:
                df = pd.read_excel(file_path, sheet_name=0, dtype=object)
            elif file_ext == '.json':
                with open(file_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
                df = pd.DataFrame(data if isinstance(data, list) else [data])
            else:
                raise UploadError(f"Unsupported file format: {file_ext}")
        except UploadError:
            raise
        except Exception as e:
            raise UploadError(f"Error loading file: {str(e)}") from e

        return df

    def calculate_file_hash(self, file_path: Union[str, Path]) -> str:
        """Calculate MD5 hash of file to detect repeated uploads."""
        with open(file_path, 'rb') as f:
            return hashlib.md5(f.read()).hexdigest()

    def resolve_columns(self, df: pd.DataFrame) -> tuple[Dict[str, str], List[str], List[str]]:
        """
        Match file headers to schema fields.
        Returns (header_by_field, missing_required_headers, ignored_headers).
        Header matching ignores surrounding whitespace and case.
        """
        schema = self.get_schema()
        columns = schema.get('columns', {})
        by_folded = {str(col).strip().casefold(): col for col in df.columns}

        header_by_field: Dict[str, str] = {}
        for field_name, column_def in columns.items():
            for alias in column_def.get('aliases', [column_def['header']]):
                match = by_folded.get(alias.strip().casefold())
                if match is not None:
                    header_by_field[field_name] = match
                    break

        missing = [columns[f]['header'] for f in schema.get('required', []) if f not in header_by_field]
        used = set(header_by_field.values())
        ignored = [str(col) for col in df.columns if col not in used]
        return header_by_field, missing, ignored

    def frame_to_rows(self, df: pd.DataFrame, header_by_field: Dict[str, str]) -> List[Dict[str, Any]]:
        """Rename resolved headers to field names; blank cells become None."""
        rows = []
        for record in df.to_dict('records'):
            row = {}
            for field_name, header in header_by_field.items():
                value = record.get(header)
                if value is not None and pd.api.types.is_scalar(value) and not isinstance(value, str) and pd.isna(value):
                    value = None
                elif isinstance(value, str) and not value.strip():
                    value = None
                row[field_name] = value
            rows.append(row)
        return rows

    def read_upload(self, file_path: Union[str, Path]) -> LoadedUpload:
        """Load a file and map it onto the schema. Missing required headers are reported, not raised."""
        file_hash = self.calculate_file_hash(file_path)
        df = self.load_file(file_path)
        header_by_field, missing, ignored = self.resolve_columns(df)
        rows = self.frame_to_rows(df, header_by_field) if not missing else []
        return LoadedUpload(
            batch_id=str(uuid.uuid4()),
            file_hash=file_hash,
            timestamp=datetime.now().isoformat(),
            rows=rows,
            missing_columns=missing,
            ignored_columns=ignored,
        )
