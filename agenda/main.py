import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from agenda.config import LOG_LEVEL
from agenda.db import init_db
from agenda.errors import AgendaError
from agenda.routers import access_codes, admin, auth, availabilities, bookings
from agenda.sessions import SessionManager

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if os.getenv("SKIP_DB_INIT") != "1":
        init_db()
    logger.info("Agenda API started")
    yield
    logger.info("Agenda API stopped")


app = FastAPI(title="Agenda Scheduling API", version="0.1.0", lifespan=lifespan)
app.state.sessions = SessionManager()


@app.exception_handler(AgendaError)
async def agenda_error_handler(request: Request, exc: AgendaError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(access_codes.router, prefix="/access-codes", tags=["access-codes"])
app.include_router(availabilities.router, prefix="/availabilities", tags=["availabilities"])
app.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
app.include_router(admin.router, prefix="/admin", tags=["admin"])


@app.get("/")
def root():
    return {"ok": True, "service": "agenda-api"}
