import asyncio
import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.routes_documents import router as documents_router
from .api.routes_templates import router as templates_router
from .cleanup import run_cleanup_loop
from .config import get_settings
from .runners.run_manager import RunManager
from .storage import build_storage
from .templating import seed_default_templates

load_dotenv()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    os.makedirs(settings.files_dir, exist_ok=True)

    # Tests install their own storage before start-up
    if getattr(app.state, "storage", None) is None:
        app.state.storage = build_storage(settings)
    app.state.runs = RunManager()

    try:
        added = await seed_default_templates(app.state.storage)
        if added:
            logger.info(f"Seeded {added} default templates")
    except Exception as e:
        logger.error(f"Failed to seed default templates: {e}")

    cleanup_task = asyncio.create_task(run_cleanup_loop(
        settings.files_dir,
        settings.file_retention_hours * 3600,
        settings.cleanup_interval_seconds,
    ))
    try:
        yield
    finally:
        cleanup_task.cancel()
        try:
            await cleanup_task
        except asyncio.CancelledError:
            pass
        await app.state.runs.wait_all()


app = FastAPI(title="Document Tailor Backend", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg", ""), "type": e.get("type", "")}
        for e in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"detail": "Invalid request", "errors": errors})


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/health")
def health():
    return {"ok": True}


app.include_router(documents_router)
app.include_router(templates_router)
