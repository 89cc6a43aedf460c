from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from aiquiz.api.routes.auth import router as auth_router
from aiquiz.api.routes.health import router as health_router
from aiquiz.api.routes.quiz import router as quiz_router
from aiquiz.api.runtime import QuizRuntime, build_runtime
from aiquiz.core.config import get_settings
from aiquiz.core.logging import configure_logging
from aiquiz.db.session import dispose_engine


def create_app(runtime: QuizRuntime | None = None) -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level, json_logs=settings.app_env != "dev")
    quiz_runtime = runtime if runtime is not None else build_runtime(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.quiz_runtime.aclose()
        await dispose_engine()

    app = FastAPI(
        title="AI Quiz API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.quiz_runtime = quiz_runtime
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(quiz_router)
    return app


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "aiquiz.main:create_app",
        factory=True,
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "dev",
    )


if __name__ == "__main__":
    run()
