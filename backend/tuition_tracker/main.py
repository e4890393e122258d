import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .config import settings
from .db import Base, engine
from .routers import auth, lessons, payments, profile, reports, students, subjects

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create DB tables (DEV ONLY — disable in production, use Alembic instead)
Base.metadata.create_all(bind=engine)

app = FastAPI(title="Tuition Tracker API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    # no retry: the action is abandoned and the message shown to the user
    logger.error("store operation failed on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Could not reach the data store, please try again"})

# --------------------------------------------------------
# ROUTES
# --------------------------------------------------------
app.include_router(auth.router)
app.include_router(students.router)
app.include_router(lessons.router)
app.include_router(subjects.router)
app.include_router(payments.router)
app.include_router(reports.router)
app.include_router(profile.router)

# --------------------------------------------------------
# ROOT ENDPOINT (for health checks)
# --------------------------------------------------------
@app.get("/")
def root():
    return {"message": "Backend is running!"}
