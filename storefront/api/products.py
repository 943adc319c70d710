"""
Catalog Product Endpoints
Unified product listing built from the catalog databases in-process
"""
from dataclasses import asdict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from storefront.catalog.reader import SqlCatalogReader
from storefront.config import Settings, get_settings
from storefront.db.engines import DatabaseRegistry, get_database_registry
from storefront.services.products import ProductCatalog
from storefront.utils.notices import NoticeBoard

router = APIRouter(prefix="/api/catalog", tags=["catalog"])

def _catalog(registry: DatabaseRegistry, config: Settings, notices: NoticeBoard) -> ProductCatalog:
    sources = [source for source in config.CATALOG_SOURCES if registry.has(source)]
    return ProductCatalog(SqlCatalogReader(registry, config), notices=notices, config=config, sources=sources)

@router.get("/products")
async def list_products(
    registry: DatabaseRegistry = Depends(get_database_registry),
    config: Settings = Depends(get_settings),
):
    """
    Products from every configured catalog source

    A source that fails or has no product table contributes nothing; the
    reason is reported under "notices".
    """
    notices = NoticeBoard()
    products = await _catalog(registry, config, notices).load_all_products()
    return {
        "count": len(products),
        "products": [product.model_dump() for product in products],
        "notices": [asdict(notice) for notice in notices.notices],
    }

@router.get("/products/{source}")
async def list_source_products(
    source: str,
    registry: DatabaseRegistry = Depends(get_database_registry),
    config: Settings = Depends(get_settings),
):
    """Products from a single catalog source"""
    if not registry.has(source):
        return JSONResponse(status_code=400, content={"error": "Database not found"})

    notices = NoticeBoard()
    products = await _catalog(registry, config, notices).load_products(source)
    return {
        "source": source,
        "count": len(products),
        "products": [product.model_dump() for product in products],
        "notices": [asdict(notice) for notice in notices.notices],
    }
