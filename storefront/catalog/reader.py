"""
Catalog readers
The "list tables / read rows" collaborator, over SQL or over the gateway
"""
import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx

from storefront.config import Settings, Source, settings as default_settings
from storefront.db import queries
from storefront.db.engines import DatabaseRegistry, get_database_registry
from storefront.errors import UpstreamError

class CatalogReader(ABC):
    """Read-only access to one or more relational catalogs"""

    @abstractmethod
    async def list_tables(self, source: str) -> List[str]:
        pass

    @abstractmethod
    async def get_rows(self, source: str, table: str) -> Dict[str, Any]:
        """
        Returns:
            {"columns": [{name, type, nullable, isPrimaryKey}], "rows": [...], "rowCount": int}
        """
        pass

class SqlCatalogReader(CatalogReader):
    """Reads the configured databases in-process through SQLAlchemy"""

    def __init__(self, registry: Optional[DatabaseRegistry] = None, config: Optional[Settings] = None):
        self.config = config or default_settings
        self.registry = registry if registry is not None else get_database_registry()

    async def list_tables(self, source: str) -> List[str]:
        engine = self.registry.require(source)
        return await asyncio.to_thread(queries.get_tables, engine, source)

    async def get_rows(self, source: str, table: str) -> Dict[str, Any]:
        engine = self.registry.require(source)
        rows = await asyncio.to_thread(queries.get_table_data, engine, source, table, self.config.CATALOG_ROW_LIMIT)
        columns = await asyncio.to_thread(queries.get_table_structure, engine, source, table)
        return {"columns": columns, "rows": rows, "rowCount": len(rows)}

class HttpCatalogReader(CatalogReader):
    """Reads catalogs through the gateway's catalog routes"""

    def __init__(self, client: httpx.AsyncClient, config: Optional[Settings] = None):
        self.client = client
        self.config = config or default_settings

    def _url(self, *parts: str) -> str:
        return "/".join([self.config.API_URL.rstrip("/"), *parts])

    async def _get(self, source: str, url: str) -> Any:
        try:
            response = await self.client.get(url)
        except httpx.HTTPError as e:
            raise UpstreamError(source, detail=str(e)) from e
        if not response.is_success:
            raise UpstreamError(source, response.status_code, response.text)
        return response.json()

    async def list_databases(self) -> List[str]:
        data = await self._get("gateway", self._url("databases"))
        return list((data or {}).get("databases") or [])

    async def list_tables(self, source: str) -> List[str]:
        source = _value(source)
        data = await self._get(source, self._url(source, "tables"))
        return list((data or {}).get("tables") or [])

    async def get_rows(self, source: str, table: str) -> Dict[str, Any]:
        source = _value(source)
        data = await self._get(source, self._url(source, table)) or {}
        rows = list(data.get("data") or data.get("rows") or [])[: self.config.CATALOG_ROW_LIMIT]
        return {
            "columns": data.get("columns") or [],
            "rows": rows,
            "rowCount": len(rows),
        }

def _value(source: Any) -> str:
    return source.value if isinstance(source, Source) else str(source)
