"""
Relational salary structure store.

One row per employee code, enforced by a unique index. Writes are a single
INSERT ... ON CONFLICT DO UPDATE, so repeated or concurrent imports for the
same employee replace the row instead of duplicating it.
"""
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.orm import sessionmaker

from paydesk.core.exceptions import SetupRequiredError
from paydesk.core.utils import normalize_code
from paydesk.db.models import SalaryStructureRow, utcnow
from paydesk.db.session import engine as default_engine

_UPSERT_COLUMNS = (
    "monthly_gross", "basic_salary", "ctc", "net_salary",
    "earnings_breakdown", "deductions_breakdown", "employer_additional_breakdown",
)

class SqlSalaryStructureStore:
    def __init__(self, engine=None):
        self.engine = engine or default_engine
        self.Session = sessionmaker(bind=self.engine, autoflush=False, future=True)

    def _insert(self):
        if self.engine.dialect.name == "postgresql":
            return pg_insert(SalaryStructureRow)
        return sqlite_insert(SalaryStructureRow)

    def _setup_error(self, exc: Exception) -> SetupRequiredError:
        return SetupRequiredError(
            SalaryStructureRow.__tablename__,
            f"Table '{SalaryStructureRow.__tablename__}' is not available; run init_db() ({exc.__class__.__name__})."
        )

    def upsert_many(self, records: List[Dict[str, Any]]) -> int:
        """Write all records in one statement. Later records win on repeated codes."""
        by_code: Dict[str, Dict[str, Any]] = {}
        now = utcnow()
        for record in records:
            code = normalize_code(record.get("employee_code"))
            if not code:
                continue
            row = {"employee_code": code, "updated_at": now}
            row.update({c: record.get(c) for c in _UPSERT_COLUMNS})
            by_code[code] = row
        if not by_code:
            return 0

        stmt = self._insert().values(list(by_code.values()))
        stmt = stmt.on_conflict_do_update(
            index_elements=[SalaryStructureRow.employee_code],
            set_={c: getattr(stmt.excluded, c) for c in _UPSERT_COLUMNS + ("updated_at",)},
        )
        try:
            with self.Session() as session:
                session.execute(stmt)
                session.commit()
        except (OperationalError, ProgrammingError) as e:
            raise self._setup_error(e) from e
        return len(by_code)

    def get(self, employee_code: Any) -> Optional[Dict[str, Any]]:
        code = normalize_code(employee_code)
        try:
            with self.Session() as session:
                row = session.execute(
                    select(SalaryStructureRow).where(SalaryStructureRow.employee_code == code)
                ).scalar_one_or_none()
                return row.to_dict() if row else None
        except (OperationalError, ProgrammingError) as e:
            raise self._setup_error(e) from e

    def all(self) -> List[Dict[str, Any]]:
        try:
            with self.Session() as session:
                rows = session.execute(
                    select(SalaryStructureRow).order_by(SalaryStructureRow.employee_code)
                ).scalars().all()
                return [r.to_dict() for r in rows]
        except (OperationalError, ProgrammingError) as e:
            raise self._setup_error(e) from e
