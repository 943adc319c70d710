"""
Catalog Database Endpoints
Read-only listing of the configured catalog databases, their tables and rows
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from storefront.config import Settings, get_settings
from storefront.db import queries
from storefront.db.engines import DatabaseRegistry, get_database_registry

router = APIRouter(prefix="/api", tags=["databases"])

def _database_not_found() -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "Database not found"})

@router.get("/databases")
def list_databases(registry: DatabaseRegistry = Depends(get_database_registry)):
    return {"databases": registry.names()}

@router.get("/health")
def health():
    return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}

@router.get("/all-data")
def all_data(
    registry: DatabaseRegistry = Depends(get_database_registry),
    config: Settings = Depends(get_settings),
):
    """Every table of every configured catalog, each capped at the row limit"""
    dump = {}
    for name in registry.names():
        engine = registry.require(name)
        tables = queries.get_tables(engine, name)
        data = {}
        for table in tables:
            rows = queries.get_table_data(engine, name, table, config.CATALOG_ROW_LIMIT)
            data[table] = {"rowCount": len(rows), "data": rows}
        dump[name] = {"tables": tables, "data": data}
    return dump

@router.get("/{db_name}/tables")
def list_tables(db_name: str, registry: DatabaseRegistry = Depends(get_database_registry)):
    if not registry.has(db_name):
        return _database_not_found()
    tables = queries.get_tables(registry.require(db_name), db_name)
    return {"database": db_name, "tables": tables}

@router.get("/{db_name}/{table_name}")
def read_table(
    db_name: str,
    table_name: str,
    registry: DatabaseRegistry = Depends(get_database_registry),
    config: Settings = Depends(get_settings),
):
    """Rows (capped) plus column metadata of one table"""
    if not registry.has(db_name):
        return _database_not_found()
    engine = registry.require(db_name)
    if not queries.table_exists(engine, table_name):
        return JSONResponse(status_code=404, content={"error": "Table not found"})

    data = queries.get_table_data(engine, db_name, table_name, config.CATALOG_ROW_LIMIT)
    columns = queries.get_table_structure(engine, db_name, table_name)
    return {
        "database": db_name,
        "table": table_name,
        "columns": columns,
        "data": data,
        "rowCount": len(data),
    }
