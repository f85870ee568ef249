# app/main.py
import sys

import uvicorn
from fastapi import FastAPI, Response, status
from contextlib import asynccontextmanager

from app.config import settings
from app.database import ConnectionManager
from app.models.database_model import ConnectionState, DatabaseStatus
from app.utils.logger import logger


def create_app(manager: ConnectionManager = None) -> FastAPI:
    manager = manager or ConnectionManager(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan event handler for startup and shutdown"""
        app.state.db = await manager.connect()
        logger.info("Database initialized successfully")
        yield
        logger.info("Application shutting down")
        await manager.close()

    app = FastAPI(
        title=settings.APP_NAME,
        description="Database bootstrap for the classroom platform",
        version="1.0.0",
        lifespan=lifespan,
    )

    @app.get("/")
    def root():
        return {"message": f"{settings.APP_NAME} Running"}

    @app.get("/health/db", response_model=DatabaseStatus)
    def database_health(response: Response):
        """Connection state and the outcome of the last index provisioning."""
        db_status = manager.status()
        if db_status.state != ConnectionState.CONNECTED:
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return db_status

    return app


app = create_app()


def serve(asgi_app: FastAPI = None, host: str = None, port: int = None) -> None:
    """
    Serve the app with uvicorn.

    uvicorn swallows a SystemExit raised during lifespan startup and reports
    a startup failure instead, so a failed startup is turned back into exit
    status 1 here.
    """
    config = uvicorn.Config(
        asgi_app or app,
        host=host or settings.BACKEND_HOST,
        port=settings.BACKEND_PORT if port is None else port,
        lifespan="on",
    )
    server = uvicorn.Server(config)
    server.run()

    if not server.started:
        logger.error("Application startup failed")
        sys.exit(1)


if __name__ == "__main__":
    serve()
