from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core import config, db
from core.errors import install_error_handlers
from core.logging import configure_logging, get_logger
from flights import repository as flights_repository
from flights import router as flights_router

logger = get_logger(__name__)

# Collections whose tables are created on startup.
COLLECTIONS = [flights_repository.collection]


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging(config.log_level(), json_logs=config.log_json())
    # Initialize the DB pool once per process.
    await db.init_pool()
    try:
        for collection in COLLECTIONS:
            await collection.ensure_table()
        logger.info("application_started", collections=[c.table for c in COLLECTIONS])
        yield
    finally:
        await db.close_pool()
        logger.info("application_stopped")


app = FastAPI(lifespan=lifespan)

origins = config.cors_origins()
if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

install_error_handlers(app)

app.include_router(flights_router.router)


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/")
def root() -> dict:
    return {"message": "OK"}


def run() -> None:
    uvicorn.run(app, host=config.host(), port=config.port())


if __name__ == "__main__":
    run()
