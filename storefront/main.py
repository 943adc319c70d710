"""
Unified Storefront - FastAPI Gateway
Catalog reads over the product databases and proxy routes to the remote
cart and order services
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.config import settings, get_source_info
from storefront.api.proxy import router as proxy_router
from storefront.api.products import router as catalog_router
from storefront.api.databases import router as databases_router

def configure_logging() -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

configure_logging()

app = FastAPI(
    title="Unified Storefront API",
    description="One storefront over three independently-owned commerce backends",
    version="1.0.0"
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers; the catalog routes must precede the generic /{db}/{table} route
app.include_router(proxy_router)
app.include_router(catalog_router)
app.include_router(databases_router)

@app.get("/")
async def root():
    """API root endpoint"""
    return {
        "app": settings.APP_NAME,
        "version": "1.0.0",
        "status": "ready",
        "features": [
            "Unified product catalog",
            "Remote cart proxying",
            "Order listings"
        ],
        "sources": get_source_info()
    }

@app.get("/health")
async def health_check():
    """Health check endpoint - simple and fast"""
    return {
        "status": "healthy",
        "databases": [source.value for source in settings.database_urls()],
    }

@app.get("/config")
async def get_config():
    """Configured sources and polling; tokens are reported only as present/absent"""
    return get_source_info()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=5000)
