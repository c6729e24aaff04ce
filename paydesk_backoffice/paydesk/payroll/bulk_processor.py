"""
Salary structure assignment: spreadsheet bulk import and single assignment.
"""
import pandas as pd
from pathlib import Path
from typing import Dict, List, Any, Optional, Union

from ..core.audit import AuditLogger
from ..core.exceptions import ValidationError
from ..core.repositories import EmployeesRepository, SalaryStructuresRepository
from ..core.upload_manager import UploadManager
from ..core.utils import normalize_code, setup_logging, to_decimal
from .engine import StatutoryRates, StructureCalculator
from .reconciler import REASON_INVALID_AMOUNT, REASON_NOT_FOUND, reconcile
from .store import SqlSalaryStructureStore

class SalaryStructureBulkProcessor:
    """
    Assigns salary structures from an employee-gross spreadsheet or one at a time.
    When `sql_store` is given, every stored structure is also upserted there.
    """

    def __init__(
        self,
        tenant_id: str,
        data_dir: Optional[Union[str, Path]] = None,
        rates: Optional[StatutoryRates] = None,
        sql_store: Optional[SqlSalaryStructureStore] = None,
    ):
        self.tenant_id = tenant_id
        self.data_dir = data_dir
        self.repository = SalaryStructuresRepository(tenant_id, data_dir)
        self.employees = EmployeesRepository(tenant_id, data_dir)
        self.upload_manager = UploadManager(tenant_id, 'salary_structures')
        self.audit_logger = AuditLogger(tenant_id, data_dir)
        self.calculator = StructureCalculator(tenant_id, data_dir, rates)
        self.sql_store = sql_store
        self.logger = setup_logging(tenant_id)

    def get_template(self) -> pd.DataFrame:
        """Get salary structure upload template."""
        return self.upload_manager.generate_template()

    def import_file(self, file_path: Union[str, Path], user_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Import an employee-gross spreadsheet.

        Every row is checked; rejections are returned together. Accepted rows
        are written with a single upsert keyed by employee code.
        """
        upload = self.upload_manager.read_upload(file_path)
        filename = Path(file_path).name

        if upload.missing_columns:
            message = f"Missing required columns: {', '.join(upload.missing_columns)}"
            self.logger.warning("Structure import %s rejected: %s", filename, message)
            self.audit_logger.log_upload(
                entity_type='salary_structures', batch_id=upload.batch_id, file_hash=upload.file_hash,
                total_rows=0, accepted_rows=0, skipped_rows=0, rejected_rows=0,
                success=False, user_id=user_id, filename=filename, error_message=message
            )
            return {
                'success': False,
                'batch_id': upload.batch_id,
                'errors': [{'column': c, 'reason': 'missing column'} for c in upload.missing_columns],
                'accepted': 0, 'skipped': 0, 'rejected': 0,
            }

        duplicate_upload = self.audit_logger.is_duplicate_upload(upload.file_hash)
        registry = self.calculator.load_registry()
        result = reconcile(upload.rows, self.employees.known_codes(), registry, self.calculator.rates)

        for rejection in result.rejected:
            self.logger.warning("Row %s (%s) rejected: %s", rejection.row_number, rejection.code or '-', rejection.reason)

        repo_result = {"created": 0, "updated": 0, "total": self.repository.get_count()}
        if result.accepted:
            records = result.records()
            repo_result = self.repository.bulk_upsert(records, key_field='employee_code')
            self._mirror(records)

        self.logger.info(
            "Structure import %s: %d accepted, %d skipped, %d rejected",
            filename, result.accepted_count, result.skipped_count, result.rejected_count
        )
        self.audit_logger.log_upload(
            entity_type='salary_structures', batch_id=upload.batch_id, file_hash=upload.file_hash,
            total_rows=upload.total_rows, accepted_rows=result.accepted_count,
            skipped_rows=result.skipped_count, rejected_rows=result.rejected_count,
            success=True, user_id=user_id, filename=filename
        )

        summary = result.summary()
        summary.update({
            'success': True,
            'batch_id': upload.batch_id,
            'total_rows': upload.total_rows,
            'repository_result': repo_result,
            'ignored_columns': upload.ignored_columns,
            'duplicate_upload': duplicate_upload,
        })
        return summary

    def assign_structure(self, employee_code: Any, gross: Any, user_id: Optional[str] = None) -> Dict[str, Any]:
        """Compute and store one employee's structure, replacing any existing one."""
        code = normalize_code(employee_code)
        if not code or code not in self.employees.known_codes():
            raise ValidationError(
                f"Employee {code or '(blank)'} not found",
                [{'field': 'employee_code', 'value': code, 'reason': REASON_NOT_FOUND}]
            )
        amount = to_decimal(gross, default=None)
        if amount is None or amount <= 0:
            raise ValidationError(
                "Monthly gross must be a positive number",
                [{'field': 'gross', 'value': gross, 'reason': REASON_INVALID_AMOUNT}]
            )

        record = self.calculator.compute(amount).to_record(code)
        repo_result = self.repository.bulk_upsert([record], key_field='employee_code')
        self._mirror([record])

        operation = 'create' if repo_result['created'] else 'update'
        self.audit_logger.log_data_change(
            'salary_structures', operation, code,
            {'monthly_gross': record['monthly_gross'], 'net_salary': record['net_salary']}, user_id
        )
        self.logger.info("Structure %sd for %s (gross %s)", operation, code, record['monthly_gross'])
        return self.repository.get_by_code(code)

    def _mirror(self, records: List[Dict[str, Any]]) -> None:
        if self.sql_store is not None:
            self.sql_store.upsert_many(records)

    def get_structure(self, employee_code: Any) -> Optional[Dict[str, Any]]:
        return self.repository.get_by_code(employee_code)

    def list_structures(self) -> List[Dict[str, Any]]:
        return self.repository.load_data()
