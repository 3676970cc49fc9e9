"""
Shopwise Insight
Main FastAPI application
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from starlette.middleware.gzip import GZipMiddleware
from contextlib import asynccontextmanager

from shopwise.config import get_settings
from shopwise.utils.logger import log
from shopwise import __version__

from shopwise.api import health, dashboard, inventory, sales, alerts, assistant
from shopwise.middleware.security_middleware import SecurityMiddleware

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    log.info(f"Starting {settings.app_name} v{__version__}")
    log.info(f"Environment: {settings.environment}")

    from shopwise.models.base import init_db
    init_db()
    log.info("Database initialized")

    yield

    log.info("Shutting down application")


app = FastAPI(
    title=settings.app_name,
    version=__version__,
    description="""
    Inventory and sales dashboard backend for small shops

    - Inventory CRUD with stock status, bulk upsert and CSV export
    - Sales listing and sale recording
    - Dashboard KPIs and chart series
    - Stock-level alerts
    - Business assistant answering common questions from your own data
    """,
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# X-Robots-Tag, Cache-Control
app.add_middleware(SecurityMiddleware)

app.add_middleware(GZipMiddleware, minimum_size=500)

# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(dashboard.router)
app.include_router(inventory.router)
app.include_router(sales.router)
app.include_router(alerts.router)
app.include_router(assistant.router)


@app.get("/robots.txt", response_class=PlainTextResponse)
async def robots_txt():
    """Block all crawlers"""
    return "User-agent: *\nDisallow: /\n"


@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "app": settings.app_name,
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "status": "/status",
        "endpoints": {
            "dashboard_summary": "GET /dashboard/summary",
            "inventory_list": "GET /inventory",
            "inventory_summary": "GET /inventory/summary",
            "inventory_export": "GET /inventory/export",
            "inventory_create": "POST /inventory",
            "inventory_update": "PUT /inventory/{id}",
            "inventory_delete": "DELETE /inventory/{id}",
            "inventory_bulk": "POST /inventory/bulk",
            "sales_products": "GET /sales/products",
            "sales_list": "GET /sales",
            "sales_record": "POST /sales",
            "alerts_list": "GET /alerts",
            "alerts_refresh": "POST /alerts/refresh",
            "alerts_resolve": "POST /alerts/{id}/resolve",
            "assistant_welcome": "GET /assistant/welcome",
            "assistant_ask": "POST /assistant/ask",
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "shopwise.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        workers=settings.api_workers if not settings.debug else 1
    )
