from fastapi import FastAPI
from fastapi.responses import RedirectResponse
from fastapi.staticfiles import StaticFiles
import logging

from simon.api.routes import router
from simon.runtime import get_runtime, init_runtime

app = FastAPI(title="simon-engine", version="0.1.0")
app.include_router(router)
# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Serve a static client if one is checked out next to the package.
# In test/CI environments the static directory is usually absent; don't fail import.
from pathlib import Path

_static_dir = Path(__file__).resolve().parent / "static"
if _static_dir.exists():
    app.mount("/ui", StaticFiles(directory=str(_static_dir), html=True), name="ui")


@app.on_event("startup")
async def _startup() -> None:
    rt = init_runtime()
    logger.info("simon-engine ready (durable scores: %s)", rt.store.durable)


@app.get("/")
async def _root() -> RedirectResponse:
    return RedirectResponse(url="/ui/")


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "simon-engine", "version": "0.1.0"}


@app.on_event("shutdown")
async def _shutdown() -> None:
    # Stop any run still playing back so its tasks don't outlive the loop.
    await get_runtime().sessions.aclose()
