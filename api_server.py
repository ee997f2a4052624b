from __future__ import annotations  # FastAPI server exposing the booth roleplay simulator

from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router
from config.settings import settings
from observability.logger import log_event
from services.enrichment_cache import get_enrichment_cache
from storage.migrate import migrate


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:  # Prepare schema on boot, release workers on exit
    migrate()
    log_event("server_started", None, db_path=settings.DB_PATH, provider=settings.ENRICHMENT_PROVIDER)
    yield
    get_enrichment_cache().shutdown()
    get_enrichment_cache.cache_clear()


app = FastAPI(title="Booth Roleplay API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"]
)
app.include_router(router)


@app.get("/healthz")
def healthz() -> Dict[str, str]:  # Liveness probe
    return {"status": "ok"}


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run("api_server:app", host="0.0.0.0", port=8000, reload=False)
