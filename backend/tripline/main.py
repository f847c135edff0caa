"""FastAPI application."""

from fastapi import FastAPI

from backend.tripline.api.routes.health import router as health_router
from backend.tripline.api.routes.itineraries import router as itineraries_router
from backend.tripline.api.routes.metrics import router as metrics_router

app = FastAPI(title="Tripline API", version="0.1.0")

# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(itineraries_router)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Tripline API", "version": "0.1.0"}
