import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .db import Base, engine, get_db
from .cleanup import purge_stale_counters
from .errors import AcePrepError
from .settings import settings
from .routers import health, generate

logging.basicConfig(
	level=getattr(logging, settings.log_level.upper(), logging.INFO),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="AcePrep API")
app.include_router(health.router)
app.include_router(generate.router)


@app.exception_handler(AcePrepError)
async def aceprep_error_handler(request: Request, exc: AcePrepError):
	if exc.status_code >= 500:
		logger.error("%s: %s", exc.error_code, exc.message)
	return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.get("/info")
def info():
	return {"status": "ok", "gemini_configured": bool(settings.gemini_api_key)}


def _purge_once() -> None:
	db = next(get_db())
	try:
		removed = purge_stale_counters(db)
		if removed:
			logger.info("Purged %d stale usage counters", removed)
	finally:
		db.close()


async def _cleanup_watcher():
	while True:
		await asyncio.sleep(24 * 60 * 60)
		try:
			_purge_once()
		except Exception:
			logger.exception("Usage counter cleanup failed")


@app.on_event("startup")
async def startup_event():
	# Initialize DB schema
	Base.metadata.create_all(bind=engine)
	# Best-effort cleanup at startup, then daily
	try:
		_purge_once()
	except Exception:
		logger.exception("Usage counter cleanup failed")
	asyncio.create_task(_cleanup_watcher())
