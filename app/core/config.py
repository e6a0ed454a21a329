"""
Configuration management for the payroll & leave engine
"""
from decimal import Decimal
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    DATABASE_URL: str = Field(default="sqlite:///./payroll.db", description="SQLAlchemy database URL")

    APP_ENV: str = Field(default="local", description="Application environment: local, staging, prod")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level: DEBUG, INFO, WARNING, ERROR")

    # Display timezone; everything is stored in UTC
    DISPLAY_TIMEZONE: str = Field(default="Asia/Kolkata", description="IANA timezone for displayed datetimes (storage is UTC)")

    # Leave entitlements per calendar year. Seed values for policy_settings rows.
    CASUAL_LEAVE_TOTAL: int = Field(default=4, ge=0, description="Casual leaves per year")
    SICK_LEAVE_TOTAL: int = Field(default=2, ge=0, description="Sick leaves per year")
    EARNED_LEAVE_TOTAL: int = Field(default=0, ge=0, description="Earned leaves per year")

    # Payroll constants. Seed values for policy_settings rows.
    BASIC_RATIO: Decimal = Field(default=Decimal("0.30"), description="Basic as a fraction of base salary")
    HRA_RATIO: Decimal = Field(default=Decimal("0.70"), description="HRA as a fraction of basic")
    FUEL_ALLOWANCE: Decimal = Field(default=Decimal("1500"), ge=0, description="Flat monthly fuel allowance")
    PF_MODE: str = Field(default="FLAT", description="PF contribution mode: FLAT or PERCENT_OF_BASIC")
    PF_AMOUNT: Decimal = Field(default=Decimal("1800"), ge=0, description="Flat PF contribution (FLAT mode)")
    PF_RATE: Decimal = Field(default=Decimal("0.12"), description="PF rate applied to basic (PERCENT_OF_BASIC mode)")
    PROFESSIONAL_TAX: Decimal = Field(default=Decimal("200"), ge=0, description="Flat monthly professional tax")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    @field_validator("APP_ENV")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate APP_ENV"""
        allowed = ["local", "staging", "prod"]
        if v not in allowed:
            raise ValueError(f"APP_ENV must be one of {allowed}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate LOG_LEVEL"""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}")
        return v.upper()

    @field_validator("BASIC_RATIO", "HRA_RATIO", "PF_RATE")
    @classmethod
    def validate_ratio(cls, v: Decimal) -> Decimal:
        """Ratios are fractions in (0, 1]"""
        if v <= 0 or v > 1:
            raise ValueError("ratio must be greater than 0 and at most 1")
        return v

    @field_validator("PF_MODE")
    @classmethod
    def validate_pf_mode(cls, v: str) -> str:
        """Validate PF_MODE"""
        allowed = ["FLAT", "PERCENT_OF_BASIC"]
        if v.upper() not in allowed:
            raise ValueError(f"PF_MODE must be one of {allowed}")
        return v.upper()

    def validate_production(self) -> None:
        """
        Validate settings for production environment

        Raises:
            ValueError: If production settings are invalid
        """
        if self.APP_ENV == "prod":
            # Slips and ledgers need row-level locking; SQLite is local/test only
            if self.DATABASE_URL.startswith("sqlite"):
                raise ValueError(
                    "DATABASE_URL must point to a server database (not sqlite) in production environment"
                )


# Create settings instance
settings = Settings()

# Validate production settings if in prod
if settings.APP_ENV == "prod":
    settings.validate_production()
