"""FastAPI application."""

from fastapi import FastAPI

from backend.app.api.errors import register_exception_handlers
from backend.app.api.routes.comments import router as comments_router
from backend.app.api.routes.health import router as health_router
from backend.app.api.routes.itinerary import router as itinerary_router
from backend.app.api.routes.metrics import router as metrics_router
from backend.app.api.routes.trips import router as trips_router
from backend.app.api.routes.versions import router as versions_router

app = FastAPI(title="Trip Revisions API", version="0.1.0")

register_exception_handlers(app)

# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(trips_router)
app.include_router(comments_router)
app.include_router(itinerary_router)
app.include_router(versions_router)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Trip Revisions API", "version": "0.1.0"}
