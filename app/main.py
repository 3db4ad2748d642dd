from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from loguru import logger
from tortoise.contrib.fastapi import RegisterTortoise
from tortoise.exceptions import BaseORMException

from app import settings
from app.routers import booking, offers, properties

TORTOISE_ORM = {
    "connections": {"default": settings.db_url},
    "apps": {"models": {"models": ["app.models"], "default_connection": "default"}},
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with RegisterTortoise(
        app,
        config=TORTOISE_ORM,
        generate_schemas=settings.GENERATE_SCHEMAS,
    ):
        logger.info("Bookings service started (db={})", settings.db_url.split("://")[0])
        yield


app = FastAPI(title="offer-bookings-ms", lifespan=lifespan)
app.include_router(booking.router)
app.include_router(offers.router)
app.include_router(properties.router)


@app.exception_handler(BaseORMException)
async def storage_error_handler(request: Request, exc: BaseORMException) -> JSONResponse:
    # storage details stay in the log, never in the response
    logger.opt(exception=exc).error(
        "Storage error on {} {}", request.method, request.url.path
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}
