"""
Audit logging for upload operations and data changes.
Tracks all import activities with detailed metrics and error logging.
"""
import json
from pathlib import Path
from typing import Dict, List, Any, Optional, Union
from datetime import datetime, timedelta

from .config import settings
from .utils import atomic_write_json

class AuditLogger:
    """Audit logger for tracking upload operations and data changes."""

    def __init__(self, tenant_id: str, data_dir: Optional[Union[str, Path]] = None):
        self.tenant_id = tenant_id

        self.data_dir = Path(data_dir or settings.DATA_DIR)
        self.audit_dir = self.data_dir / "audit"
        self.audit_dir.mkdir(parents=True, exist_ok=True)

        self.uploads_log = self.audit_dir / f"{tenant_id}_uploads.jsonl"
        self.changes_log = self.audit_dir / f"{tenant_id}_changes.jsonl"
        self.hashes_file = self.audit_dir / f"{tenant_id}_file_hashes.json"

    def log_upload(
        self,
        entity_type: str,
        batch_id: str,
        file_hash: str,
        total_rows: int,
        accepted_rows: int,
        skipped_rows: int,
        rejected_rows: int,
        success: bool,
        user_id: Optional[str] = None,
        filename: Optional[str] = None,
        error_message: Optional[str] = None
    ):
        """Log upload operation with detailed metrics."""

        log_entry = {
            'timestamp': datetime.now().isoformat(),
            'tenant_id': self.tenant_id,
            'entity_type': entity_type,
            'batch_id': batch_id,
            'file_hash': file_hash,
            'total_rows': total_rows,
            'accepted_rows': accepted_rows,
            'skipped_rows': skipped_rows,
            'rejected_rows': rejected_rows,
            'success': success,
            'user_id': user_id,
            'filename': filename,
            'error_message': error_message
        }

        with open(self.uploads_log, 'a', encoding='utf-8') as f:
            f.write(json.dumps(log_entry, default=str) + '\n')

        if file_hash:
            self._update_file_hash(file_hash, batch_id, entity_type)

    def log_data_change(
        self,
        entity_type: str,
        operation: str,  # 'create', 'update', 'delete', 'lock', 'unlock'
        entity_id: str,
        changes: Dict[str, Any],
        user_id: Optional[str] = None
    ):
        """Log individual data changes for audit trail."""

        log_entry = {
            'timestamp': datetime.now().isoformat(),
            'tenant_id': self.tenant_id,
            'entity_type': entity_type,
            'operation': operation,
            'entity_id': entity_id,
            'changes': changes,
            'user_id': user_id
        }

        with open(self.changes_log, 'a', encoding='utf-8') as f:
            f.write(json.dumps(log_entry, default=str) + '\n')

    def is_duplicate_upload(self, file_hash: str) -> bool:
        """Check if file has already been uploaded."""
        return file_hash in self._load_hashes()

    def _load_hashes(self) -> Dict[str, Any]:
        if not self.hashes_file.exists():
            return {}
        try:
            with open(self.hashes_file, 'r', encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError:
            return {}

    def _update_file_hash(self, file_hash: str, batch_id: str, entity_type: str):
        """Update file hashes registry."""
        hashes = self._load_hashes()
        hashes[file_hash] = {
            'batch_id': batch_id,
            'entity_type': entity_type,
            'timestamp': datetime.now().isoformat()
        }
        atomic_write_json(str(self.hashes_file), hashes)

    def _read_jsonl(self, path: Path) -> List[Dict[str, Any]]:
        if not path.exists():
            return []
        entries = []
        with open(path, 'r', encoding='utf-8') as f:
            for line in f:
                try:
                    entries.append(json.loads(line.strip()))
                except json.JSONDecodeError:
                    continue
        return entries

    def get_upload_history(self, days: int = 30, entity_type: Optional[str] = None) -> List[Dict[str, Any]]:
        """Get upload history for the last N days, newest first."""
        cutoff_date = datetime.now() - timedelta(days=days)
        history = []

        for entry in self._read_jsonl(self.uploads_log):
            try:
                entry_date = datetime.fromisoformat(entry['timestamp'])
            except (KeyError, ValueError):
                continue
            if entry_date >= cutoff_date:
                if entity_type is None or entry.get('entity_type') == entity_type:
                    history.append(entry)

        history.sort(key=lambda x: x['timestamp'], reverse=True)
        return history

    def get_upload_stats(self, entity_type: Optional[str] = None) -> Dict[str, Any]:
        """Get upload statistics summary."""
        history = self.get_upload_history(days=90, entity_type=entity_type)

        if not history:
            return {
                'total_uploads': 0,
                'successful_uploads': 0,
                'failed_uploads': 0,
                'total_rows_accepted': 0,
                'total_rows_rejected': 0,
                'last_upload': None
            }

        successful = [h for h in history if h.get('success')]

        return {
            'total_uploads': len(history),
            'successful_uploads': len(successful),
            'failed_uploads': len(history) - len(successful),
            'total_rows_accepted': sum(h.get('accepted_rows', 0) for h in history),
            'total_rows_rejected': sum(h.get('rejected_rows', 0) for h in history),
            'last_upload': history[0]['timestamp']
        }

    def get_change_history(self, entity_type: str, entity_id: str) -> List[Dict[str, Any]]:
        """Get change history for specific entity, newest first."""
        changes = [
            entry for entry in self._read_jsonl(self.changes_log)
            if entry.get('entity_type') == entity_type and entry.get('entity_id') == entity_id
        ]
        changes.sort(key=lambda x: x['timestamp'], reverse=True)
        return changes
