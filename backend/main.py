"""
Time Tools – Backend API
Start with: uvicorn main:app --reload
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from config import get_settings
from db import init_db
from log_config import setup_logging
from routers import analytics, sessions

settings = get_settings()
setup_logging(settings.log_level, settings.log_file)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Time Tools API ready (db={}, local cache={})", settings.database_url, settings.local_store_path)
    yield


app = FastAPI(
    title="Time Tools API",
    description="Session recording and analytics for the timing widgets",
    version="0.1.0",
    lifespan=lifespan,
)

# Allow the widgets' frontend to call this API
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sessions.router)
app.include_router(analytics.router)


@app.get("/health")
def health():
    """Check that the API is running. Frontend can call this first."""
    return {"status": "ok", "message": "Time Tools API is running"}


@app.get("/")
def root():
    """Root welcome."""
    return {"app": "Time Tools", "docs": "/docs"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", reload=True)
