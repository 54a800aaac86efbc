"""FastAPI application"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from helan_chat import __version__
from helan_chat.core.config import settings
from helan_chat.core.database import init_db
from helan_chat.core.errors import AppError, create_error_response
from helan_chat.core.logging import logger
from helan_chat.core.scraping_database import init_scraping_db
from helan_chat.routers import scraping, services
from helan_chat.scheduler import task_registry, task_scheduler
from helan_chat.scheduler.tasks import ScrapeWebsitesTask


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifecycle"""
    logger.configure()
    logger.info("Starting application", module="app")
    settings.ensure_data_dir()

    await init_db()
    await init_scraping_db()

    if settings.CRAWLER_ENABLED and ScrapeWebsitesTask.name not in task_registry:
        task_registry.register(ScrapeWebsitesTask())

    # the scrape task fires immediately when CRAWLER_RUN_ON_START is set
    await task_scheduler.start()
    logger.info("Application started", module="app", host=settings.API_HOST, port=settings.API_PORT)

    yield

    logger.info("Shutting down", module="app")
    await task_scheduler.stop()

    from helan_chat.services.crawler.crawler_service import get_crawler_service

    await get_crawler_service().close()

    from helan_chat.core.database import engine
    from helan_chat.core.scraping_database import scraping_engine

    for name, db_engine in (("primary", engine), ("scraping", scraping_engine)):
        try:
            await db_engine.dispose()
        except Exception as e:
            logger.warning("Disposing database engine failed", module="app", database=name, error=str(e))
    logger.info("Application stopped", module="app")


app = FastAPI(
    title="Helan support chat",
    description="Knowledge base built from the Helan websites",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.code, exc.error_message, exc.data),
    )


app.include_router(scraping.router)
app.include_router(services.router)


@app.get("/health")
async def health_check():
    return {"status": "ok", "version": __version__}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "helan_chat.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=True,
    )
