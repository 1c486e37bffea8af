import logging

from fastapi import FastAPI

from .db import Base, engine, ensure_schema
from .settings import settings
from .routers import health
from .routers import auth
from .routers import syllabi
from .routers import references
from .routers import admin

logging.basicConfig(
	level=getattr(logging, settings.log_level.upper(), logging.INFO),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Syllabus Editor API")
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(syllabi.router)
app.include_router(references.router)
app.include_router(admin.router)


@app.get("/info")
def root():
	return {
		"status": "ok",
		"gemini_configured": bool(settings.gemini_api_key),
		"database_configured": engine is not None,
	}


@app.on_event("startup")
async def startup_event():
	if engine is None:
		logger.warning("DATABASE_URL is empty; syllabus storage is disabled")
		return
	# Initialize DB schema
	Base.metadata.create_all(bind=engine)
	# Apply lightweight dev migrations
	try:
		ensure_schema()
	except Exception:
		logger.exception("Schema migration failed")
