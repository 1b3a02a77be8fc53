from decimal import Decimal
from typing import Optional
from urllib.parse import quote_plus

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class PriceList(BaseModel):
    """Fixed prices for the non-physical order kinds, loaded once at startup."""

    digital_download: Decimal
    timed_book_license: Decimal
    monthly_subscription: Decimal
    annual_subscription: Decimal

    model_config = {"frozen": True}


class Settings(BaseSettings):
    ENV: str = "production"

    postgres_user: str = "postgres"
    postgres_password: str = ""
    postgres_db: str = "maison_edition"
    postgres_host: str = "localhost"
    postgres_port: str = "5432"
    database_url_override: Optional[str] = Field(default=None, alias="DATABASE_URL")

    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    stripe_secret_key: str
    stripe_webhook_secret: str
    stripe_currency: str = "eur"
    stripe_timeout_seconds: int = 10
    frontend_url: str = "http://localhost:5173"

    price_digital_download: Decimal = Decimal("10.00")
    price_timed_book_license: Decimal = Decimal("5.00")
    price_monthly_subscription: Decimal = Decimal("30.00")
    price_annual_subscription: Decimal = Decimal("50.00")

    free_shipping_threshold: Decimal = Decimal("200.00")
    default_shipping_cost: Decimal = Decimal("50.00")

    @property
    def database_url(self):
        if self.database_url_override:
            return self.database_url_override
        encoded_password = quote_plus(self.postgres_password)
        return (
            f"postgresql+psycopg2://{self.postgres_user}:"
            f"{encoded_password}@{self.postgres_host}:"
            f"{self.postgres_port}/{self.postgres_db}"
        )

    def price_list(self) -> PriceList:
        return PriceList(
            digital_download=self.price_digital_download,
            timed_book_license=self.price_timed_book_license,
            monthly_subscription=self.price_monthly_subscription,
            annual_subscription=self.price_annual_subscription,
        )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "allow"
        populate_by_name = True


settings = Settings()
