from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PAYDESK_", env_file=".env", extra="ignore")

    APP_NAME: str = Field("Paydesk", description="Logger namespace and app title")
    DATA_DIR: str = Field("./data", description="Root for JSON repositories, staging and audit files")
    AUDIT_LOG_PATH: str = Field("./data/logs", description="Rotating log files per tenant")
    LOG_LEVEL: str = Field("INFO", description="Root log level for tenant loggers")
    DB_URL: str = Field("sqlite:///./data/paydesk.db", description="Database URL for the relational structure store")

    # Statutory defaults (India). Percentages, not fractions.
    # Provident Fund: applied to basic
    PF_EMPLOYEE_RATE: float = 12.0
    PF_EMPLOYER_RATE: float = 13.0

    # Employees' State Insurance: applied to gross, only up to the threshold
    ESI_EMPLOYEE_RATE: float = 0.75
    ESI_EMPLOYER_RATE: float = 3.25
    ESI_GROSS_THRESHOLD: float = 21000.0

    # Employer ESI in dashboard rollups is derived from the employee share
    # using this rate against ESI_EMPLOYEE_RATE.
    ESI_EMPLOYER_ROLLUP_RATE: float = 4.75

    # Monthly salary record lifecycle
    LOCKED_STATUS: str = "Locked"
    OPEN_STATUS: str = "Open"

    # Advance deductions in the rollups (case-insensitive, exact)
    ADVANCE_ROLLUP_NAMES: list[str] = ["Advance"]

settings = Settings()
