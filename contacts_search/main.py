import logging
from fastapi import FastAPI
from .config.settings import settings
from .routes import search_routes, analytics_routes, health_routes
from .services.container import container

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
log = logging.getLogger("contacts_search")

# Create FastAPI application
app = FastAPI(
    title=settings.api_title,
    description=settings.api_description,
    version=settings.api_version
)

# Include routers with API prefix
app.include_router(search_routes.router, prefix="/api", tags=["search"])
app.include_router(analytics_routes.router, prefix="/api", tags=["analytics"])
app.include_router(health_routes.router, prefix="/api", tags=["health"])


@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "message": settings.api_title,
        "version": settings.api_version,
        "description": settings.api_description,
        "docs": "/docs",
        "redoc": "/redoc",
        "health": "/api/health",
        "endpoints": {
            "search": "/api/contacts/search",
            "kpi": "/api/contacts/kpi",
            "pivot": "/api/contacts/pivot",
            "health": "/api/health"
        },
        "indexes": container.elasticsearch_service.target_indexes
    }


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    log.info("Starting %s v%s", settings.api_title, settings.api_version)
    log.info("Elasticsearch URL: %s", settings.elasticsearch_url)
    log.info("Target indexes: %s", ", ".join(container.elasticsearch_service.target_indexes))

    # Check index health on startup
    try:
        available_indexes = await container.elasticsearch_service.check_index_health()
        log.info("Available indexes: %s", ", ".join(available_indexes))
    except Exception as e:
        log.warning("Could not check index health - %s", e)


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    log.info("Shutting down %s", settings.api_title)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
