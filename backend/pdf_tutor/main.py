import logging
import time
from pathlib import Path
from typing import Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text

from pdf_tutor.api.deps import get_tutor_service, session_registry
from pdf_tutor.api.v1 import auth, documents, chat
from pdf_tutor.core.config import settings
from pdf_tutor.core.rate_limiter import init_rate_limiter
from pdf_tutor.database import Base, engine
from pdf_tutor import models  # noqa: F401  registers tables on Base

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="PDF Tutor API",
    description="Chat with an AI tutor about an uploaded PDF",
    version="1.0.0"
)

# CORS middleware (configured via settings for production safety)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

init_rate_limiter(app)

uploads_dir = Path(settings.UPLOADS_DIR).resolve()
uploads_dir.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=str(uploads_dir)), name="uploads")


# Health check endpoint
@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "PDF Tutor Backend"}


# Detailed health including DB and the tutor model client
@app.get("/healthz")
async def health_detailed() -> Dict[str, object]:
    resp: Dict[str, object] = {"service": "PDF Tutor Backend", "status": "healthy"}

    t0 = time.time()
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        resp["db"] = {"status": "ok", "elapsed_ms": round((time.time() - t0)*1000.0, 2)}
    except Exception as e:
        resp["db"] = {"status": "error", "error": str(e), "elapsed_ms": round((time.time() - t0)*1000.0, 2)}
        resp["status"] = "degraded"

    resp["ai"] = get_tutor_service().client.get_initialization_status()
    resp["tutor_sessions"] = len(session_registry)
    return resp


# Include API routers
app.include_router(auth.router, prefix="/api/v1/auth", tags=["authentication"])
app.include_router(documents.router, prefix="/api/v1", tags=["documents"])
app.include_router(chat.router, prefix="/api/v1", tags=["chat"])


@app.on_event("startup")
async def create_tables() -> None:
    Base.metadata.create_all(bind=engine)


@app.on_event("shutdown")
async def close_tutor_sessions() -> None:
    logger.info("Closing %d tutor sessions", len(session_registry))
    session_registry.close_all()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
