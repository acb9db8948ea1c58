"""Main FastAPI application for the task planner."""
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.errors import CycleDetected, InvalidRule, PlannerError, UnknownReference
from app.middleware.cors import add_cors_middleware
from app.db.init import init_db
from app.routers import goals_router, planner_router, tasks_router
from app.utils.logger import LOG_LEVEL

logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO))
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    InvalidRule: status.HTTP_422_UNPROCESSABLE_ENTITY,
    CycleDetected: status.HTTP_409_CONFLICT,
    UnknownReference: status.HTTP_404_NOT_FOUND,
}

app = FastAPI(
    title="Task Planner API",
    description="Recurring tasks, per-occurrence completion and calendar planning views",
    version="1.0.0",
)

add_cors_middleware(app)


@app.exception_handler(PlannerError)
async def planner_error_handler(request: Request, exc: PlannerError):
    """Translate planner errors into HTTP responses."""
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    logger.warning(f"{request.method} {request.url.path} -> {status_code}: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code, "details": exc.details},
    )


@app.on_event("startup")
async def startup_event():
    """Create database tables on startup."""
    try:
        init_db()
    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}")
        raise


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


@app.get("/")
async def root():
    return {
        "title": "Task Planner API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }


app.include_router(tasks_router, prefix="/api")  # /api/tasks
app.include_router(goals_router, prefix="/api")  # /api/goals
app.include_router(planner_router, prefix="/api")  # /api/planner/...


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
