"""Application entrypoint: ``uvicorn trainhub.main:app``."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from trainhub.api.v1.router import get_api_router
from trainhub.core.config import get_config
from trainhub.core.startup import bootstrap


@asynccontextmanager
async def lifespan(_app: FastAPI):
    bootstrap()
    yield


def create_app() -> FastAPI:
    cfg = get_config()
    app = FastAPI(title=cfg.APP_NAME, version=cfg.APP_VERSION, lifespan=lifespan)
    app.include_router(get_api_router())

    @app.get("/")
    def root() -> dict:
        return {"service": cfg.APP_NAME, "version": cfg.APP_VERSION, "api_prefix": cfg.API_PREFIX}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    cfg = get_config()
    uvicorn.run("trainhub.main:app", host=cfg.API_HOST, port=cfg.API_PORT)
