from decimal import Decimal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = Field(default="Wholesale POS", alias="APP_NAME")
    app_env: str = Field(default="dev", alias="APP_ENV")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    database_url: str = Field(default="sqlite:///./wholesale_pos.db", alias="DATABASE_URL")
    currency: str = Field(default="USD", alias="CURRENCY")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, alias="LOG_FILE")
    audit_file: str = Field(default="data/orders_audit.jsonl", alias="AUDIT_FILE")

    # Store tax settings served by the local gateway
    store_taxes_included: bool = Field(default=False, alias="STORE_TAXES_INCLUDED")
    store_tax_shipping: bool = Field(default=True, alias="STORE_TAX_SHIPPING")
    store_country_code: str = Field(default="US", alias="STORE_COUNTRY_CODE")

    allow_payment_terms: bool = Field(default=True, alias="ALLOW_PAYMENT_TERMS")
    surcharge_keyword_fallback: bool = Field(default=True, alias="SURCHARGE_KEYWORD_FALLBACK")
    default_surcharge_description: str = Field(
        default="Additional fee", alias="DEFAULT_SURCHARGE_DESCRIPTION"
    )

    # 0 disables the check
    order_minimum_amount: Decimal = Field(default=Decimal("0"), alias="ORDER_MINIMUM_AMOUNT")
    order_minimum_quantity: int = Field(default=0, alias="ORDER_MINIMUM_QUANTITY")
    order_minimum_items: int = Field(default=0, alias="ORDER_MINIMUM_ITEMS")

    idempotency_ttl: int = Field(default=3600, alias="IDEMPOTENCY_TTL")
    order_prefix: str = Field(default="B2B", alias="ORDER_PREFIX")

    class Config:
        env_file = ".env"
        populate_by_name = True


settings = Settings()
