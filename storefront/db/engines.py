"""
Catalog database engines
One SQLAlchemy engine per configured catalog source
"""
import logging
from typing import Dict, List, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from storefront.config import Settings, Source, settings
from storefront.errors import UnknownSourceError

logger = logging.getLogger(__name__)

class DatabaseRegistry:
    """Engines keyed by source name"""

    def __init__(self, engines: Optional[Dict[str, Engine]] = None):
        self._engines: Dict[str, Engine] = {}
        for name, engine in (engines or {}).items():
            self.register(name, engine)

    @classmethod
    def from_settings(cls, config: Settings) -> "DatabaseRegistry":
        registry = cls()
        for source, url in config.database_urls().items():
            registry.register(source, create_engine(url, pool_pre_ping=True, pool_recycle=1800))
            logger.info("Engine for '%s' created", source.value)
        return registry

    def register(self, source, engine: Engine) -> None:
        key = source.value if isinstance(source, Source) else str(source)
        self._engines[key] = engine

    def names(self) -> List[str]:
        return list(self._engines)

    def has(self, source) -> bool:
        key = source.value if isinstance(source, Source) else str(source)
        return key in self._engines

    def require(self, source) -> Engine:
        key = source.value if isinstance(source, Source) else str(source)
        try:
            return self._engines[key]
        except KeyError:
            raise UnknownSourceError(key) from None

    def dispose(self) -> None:
        for engine in self._engines.values():
            engine.dispose()

# Singleton instance
_database_registry: Optional[DatabaseRegistry] = None

def get_database_registry() -> DatabaseRegistry:
    """Get or create the process-wide engine registry"""
    global _database_registry
    if _database_registry is None:
        _database_registry = DatabaseRegistry.from_settings(settings)
    return _database_registry
