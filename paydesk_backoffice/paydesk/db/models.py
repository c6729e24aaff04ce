from sqlalchemy import (
    Column, String, Integer, Float, DateTime, Boolean, JSON, UniqueConstraint
)
from datetime import datetime, timezone
from paydesk.db.session import Base

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

class SalaryStructureRow(Base):
    __tablename__ = "salary_structures"
    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_code = Column(String, nullable=False, unique=True, index=True)
    monthly_gross = Column(Float, nullable=False)
    basic_salary = Column(Float, default=0.0)
    ctc = Column(Float, default=0.0)
    net_salary = Column(Float, default=0.0)
    earnings_breakdown = Column(JSON, default=list)
    deductions_breakdown = Column(JSON, default=list)
    employer_additional_breakdown = Column(JSON, default=list)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "employee_code": self.employee_code,
            "monthly_gross": self.monthly_gross,
            "basic_salary": self.basic_salary,
            "ctc": self.ctc,
            "net_salary": self.net_salary,
            "earnings_breakdown": list(self.earnings_breakdown or []),
            "deductions_breakdown": list(self.deductions_breakdown or []),
            "employer_additional_breakdown": list(self.employer_additional_breakdown or []),
        }

class ComponentRow(Base):
    __tablename__ = "components"
    id = Column(Integer, primary_key=True, autoincrement=True)
    collection = Column(String, nullable=False, index=True)  # earnings / deductions / employer_additional
    name = Column(String, nullable=False)
    based_on = Column(String, nullable=True)
    calculation_percentage = Column(Float, default=0.0)
    max_calculated_value = Column(Float, default=0.0)
    special_rule = Column(String, nullable=True)

    __table_args__ = (UniqueConstraint("collection", "name", name="uq_component_name"),)

class ShiftRow(Base):
    __tablename__ = "shifts"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, unique=True)
    start_time = Column(String, nullable=False)
    end_time = Column(String, nullable=False)
    status = Column(String, default="active")
    in_grace_period = Column(Integer, default=0)
    out_grace_period = Column(Integer, default=0)
    start_reminder = Column(Integer, default=0)
    end_reminder = Column(Integer, default=0)
    is_night_shift = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow)

class MonthlySalaryRecordRow(Base):
    __tablename__ = "monthly_salary_records"
    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_code = Column(String, nullable=False, index=True)
    month = Column(String, nullable=False)
    year = Column(Integer, nullable=False)
    status = Column(String, default="Open")
    paid_days = Column(Float, default=0.0)
    net_in_hand = Column(Float, default=0.0)
    payload = Column(JSON, default=dict)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (UniqueConstraint("employee_code", "month", "year", name="uq_monthly_record"),)

    def is_locked(self, locked_status: str = "Locked") -> bool:
        return self.status == locked_status
