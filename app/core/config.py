from decimal import Decimal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Printed on vouchers and used as the voucher number prefix
    institution_code: str = Field("GCL", alias="INSTITUTION_CODE")
    institution_name: str = Field("Government College Larkana", alias="INSTITUTION_NAME")
    bank_account_title: str = Field("Government College Larkana", alias="BANK_ACCOUNT_TITLE")
    bank_account_no: str = Field("0010123456789", alias="BANK_ACCOUNT_NO")
    bank_branch_code: str = Field("0010", alias="BANK_BRANCH_CODE")
    default_bank_name: str = Field("Allied Bank Limited", alias="DEFAULT_BANK_NAME")
    voucher_valid_days: int = Field(30, alias="VOUCHER_VALID_DAYS")

    default_late_fee_per_day: Decimal = Field(Decimal("50"), alias="DEFAULT_LATE_FEE_PER_DAY")
    number_generation_attempts: int = Field(5, alias="NUMBER_GENERATION_ATTEMPTS")

    gateway_success_rate: float = Field(0.9, alias="GATEWAY_SUCCESS_RATE")
    gateway_checkout_url: str = Field(
        "https://payment.{gateway}.com/checkout/{transaction_id}",
        alias="GATEWAY_CHECKOUT_URL",
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
