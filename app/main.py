import uvicorn
from fastapi import FastAPI

from app.api.routes.deliveries import router as deliveries_router
from app.api.routes.health import router as health_router
from app.api.routes.internal_partner import router as internal_partner_router
from app.api.routes.internal_shop import router as internal_shop_router
from app.api.routes.partner import router as partner_router
from app.api.routes.partner_checkout import router as partner_checkout_router
from app.api.routes.shop_checkout import router as shop_checkout_router
from app.api.routes.stripe_webhook import router as stripe_webhook_router
from app.core.config import get_settings
from app.core.logging import configure_logging


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    docs_enabled = bool(getattr(settings, "enable_openapi_docs", True))
    app = FastAPI(
        title="Blockcraft Partner & Shop API",
        version="0.1.0",
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )
    app.include_router(health_router)
    app.include_router(partner_router)
    app.include_router(partner_checkout_router)
    app.include_router(shop_checkout_router)
    app.include_router(stripe_webhook_router)
    app.include_router(deliveries_router)
    app.include_router(internal_partner_router)
    app.include_router(internal_shop_router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "dev",
    )


if __name__ == "__main__":
    run()
