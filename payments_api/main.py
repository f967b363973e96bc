from fastapi import FastAPI

from payments_api.log import configure_logging
from payments_api.routes.health import router as health_router
from payments_api.routes.webhooks import router as webhooks_router

def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="marketplace-payments-api", version="0.1.0")
    app.include_router(health_router)
    app.include_router(webhooks_router)
    return app

app = create_app()
