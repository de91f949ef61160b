from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_env: str = Field(default="dev", alias="APP_ENV")
    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=8000, alias="APP_PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    enable_openapi_docs: bool = Field(default=True, alias="ENABLE_OPENAPI_DOCS")
    site_url: str = Field(default="http://localhost:3000", alias="SITE_URL")

    internal_api_token: str = Field(
        default="dev_internal_token_change_me",
        alias="INTERNAL_API_TOKEN",
    )
    internal_api_allowlist: str = Field(
        default="127.0.0.1/32,::1/128",
        alias="INTERNAL_API_ALLOWLIST",
    )
    internal_api_trusted_proxies: str = Field(default="", alias="INTERNAL_API_TRUSTED_PROXIES")

    delivery_api_key: str = Field(default="", alias="DELIVERY_API_KEY")
    delivery_max_attempts: int = Field(default=10, alias="DELIVERY_MAX_ATTEMPTS")
    delivery_lease_seconds: int = Field(default=300, alias="DELIVERY_LEASE_SECONDS")

    shop_currency: str = Field(default="EUR", alias="SHOP_CURRENCY")
    mc_online_mode: bool = Field(default=False, alias="MC_ONLINE_MODE")
    mojang_api_timeout_seconds: float = Field(default=5.0, alias="MOJANG_API_TIMEOUT_SECONDS")

    partner_currency: str = Field(default="EUR", alias="PARTNER_CURRENCY")
    partner_vip_daily_price: float = Field(default=10.0, alias="PARTNER_VIP_DAILY_PRICE")

    stripe_secret_key: str = Field(default="", alias="STRIPE_SECRET_KEY")
    stripe_webhook_secret: str = Field(default="", alias="STRIPE_WEBHOOK_SECRET")
    stripe_api_version: str = Field(default="2024-06-20", alias="STRIPE_API_VERSION")

    paypal_env: str = Field(default="sandbox", alias="PAYPAL_ENV")
    paypal_client_id: str = Field(default="", alias="PAYPAL_CLIENT_ID")
    paypal_client_secret: str = Field(default="", alias="PAYPAL_CLIENT_SECRET")

    ops_alert_discord_webhook_url: str = Field(default="", alias="OPS_ALERT_DISCORD_WEBHOOK_URL")
    ops_alert_webhook_url: str = Field(default="", alias="OPS_ALERT_WEBHOOK_URL")

    database_url: str = Field(alias="DATABASE_URL")
    redis_url: str = Field(alias="REDIS_URL")

    celery_broker_url: str = Field(alias="CELERY_BROKER_URL")
    celery_result_backend: str = Field(alias="CELERY_RESULT_BACKEND")

    @property
    def resolved_delivery_max_attempts(self) -> int:
        return min(50, max(1, int(self.delivery_max_attempts)))

    @property
    def resolved_delivery_lease_seconds(self) -> int:
        return max(1, int(self.delivery_lease_seconds))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
