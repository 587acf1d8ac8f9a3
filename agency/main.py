# agency/main.py
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from agency.api import include_routers
from agency.api.deps import AppState
from agency.api.errors import validation_error_handler
from agency.data.database import Base
from agency.utils.logging import RequestLoggingMiddleware, configure_logging, get_logger
from agency.utils.settings import SERVICE_NAME

# IMPORT WSZYSTKICH MODELI PRZED CREATE_ALL
import agency.data.models  # noqa: F401

logger = get_logger(__name__)


def create_app(state: AppState | None = None) -> FastAPI:
    """
    state=None -> zasoby z ustawien (.env); testy podaja wlasny AppState.
    """
    configure_logging(SERVICE_NAME)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        container = state or AppState.from_settings()
        logger.info(f"Models registered in Base.metadata: {list(Base.metadata.tables.keys())}")
        try:
            Base.metadata.create_all(bind=container.engine)
        except Exception as e:
            logger.critical(f"Failed to create tables: {e}")
            container.close()
            raise
        app.state.container = container
        logger.info("Database tables ready")
        try:
            yield
        finally:
            container.close()
            logger.info("Application resources released")

    app = FastAPI(
        title="Agency Service",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_middleware(RequestLoggingMiddleware, service_name=SERVICE_NAME)
    include_routers(app)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
