import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import config
from .api.endpoints import admin, charts, chat, forms, public
from .database import create_db_and_tables, engine

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

if not (config.OPENAI_API_KEY or config.DEEPSEEK_API_KEY):
    logger.warning(
        "Kein OPENAI_API_KEY/DEEPSEEK_API_KEY gesetzt. Der Chat-Agent wird nicht verfügbar sein."
    )


# --- Lifecycle Events ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Anwendung startet...")
    await create_db_and_tables()
    yield
    logger.info("Anwendung fährt herunter...")
    await engine.dispose()


# --- FastAPI App Instanz ---
app = FastAPI(title="GoodForm Backend", lifespan=lifespan)

logger.info("CORS: Erlaubte Origins: %s", config.ALLOWED_ORIGINS)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(admin.router, tags=["admin"])
app.include_router(forms.router, tags=["forms"])
app.include_router(public.router, tags=["public"])
app.include_router(charts.router, tags=["charts"])
app.include_router(chat.router, tags=["chat"])


@app.get("/")
async def read_root():
    return {"message": "Bienvenido al backend de GoodForm!"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "goodform.main:app",
        host=config.APP_HOST,
        port=config.APP_PORT,
        reload=config.RELOAD_APP,
    )
