from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from newsdeck.api.deps import get_cache
from newsdeck.api.routes import chat, groups, research, tasks
from newsdeck.config import settings
from newsdeck.services.logger import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    removed = get_cache().sweep()
    if removed:
        logger.info(f"Removed {removed} expired cache entries")
    yield


app = FastAPI(
    title="NewsDeck",
    description="News dashboard with per-article research summaries and follow-up chat",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(groups.router)
app.include_router(research.router)
app.include_router(chat.router)
app.include_router(tasks.router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "service": "newsdeck"}
