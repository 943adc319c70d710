"""
Storefront Configuration
Central place to configure upstream services, catalog databases and polling
All values can be overridden through environment variables or a .env file
"""
from dataclasses import dataclass
from enum import Enum
from pydantic_settings import BaseSettings
from typing import Dict, List, Optional

class Source(str, Enum):
    """Independently-owned backends contributing products, carts and orders"""
    RAILWAY = "railway"              # Relational catalog A, railway cart/order service
    MICROSERVICE = "microservice"    # Relational catalog B, backs the third-party ecom service
    PHONEWEBSITE = "phonewebsite"    # Relational phone catalog, backs the phone store
    ECOM = "ecom"                    # Third-party e-commerce microservice (REST)
    PHONESTORE = "phonestore"        # Phone store service (REST, cookie auth)

class Transport(str, Enum):
    """How a source is reached"""
    SQL = "sql"
    REST = "rest"

class CartProtocol(str, Enum):
    """Remote cart/order protocol families"""
    ECOM = "ecom"
    RAILWAY = "railway"
    PHONESTORE = "phonestore"

@dataclass(frozen=True)
class SourceInfo:
    transport: Transport
    identity_field: str
    cart_protocol: CartProtocol

SOURCES: Dict[Source, SourceInfo] = {
    Source.RAILWAY: SourceInfo(Transport.SQL, "product_id", CartProtocol.RAILWAY),
    Source.MICROSERVICE: SourceInfo(Transport.SQL, "id", CartProtocol.ECOM),
    Source.PHONEWEBSITE: SourceInfo(Transport.SQL, "id", CartProtocol.PHONESTORE),
    Source.ECOM: SourceInfo(Transport.REST, "cartItemId", CartProtocol.ECOM),
    Source.PHONESTORE: SourceInfo(Transport.REST, "username", CartProtocol.PHONESTORE),
}

# Order listings label the third-party service by its own name; the catalog
# knows the same products under the microservice database.
ORDER_SOURCE_ALIASES: Dict[str, str] = {
    Source.ECOM.value: Source.MICROSERVICE.value,
}

class Settings(BaseSettings):
    """Application Settings"""

    # ============================================
    # LOCAL GATEWAY
    # ============================================

    # Base URL of this gateway as seen by a storefront session
    API_URL: str = "http://localhost:5000/api"

    # ============================================
    # REMOTE SERVICES
    # ============================================

    RAILWAY_BASE_URL: str = "https://test-9she.onrender.com"
    ECOM_BASE_URL: str = "https://ecommerce-integration.onrender.com"
    PHONESTORE_BASE_URL: str = "https://phone-store-dinh.vercel.app"

    # Fallback bearer tokens when the incoming request carries none
    RAILWAY_AUTH_TOKEN: Optional[str] = None
    ECOM_AUTH_TOKEN: Optional[str] = None

    # Railway identifies the shopper by numeric user and cart ids
    RAILWAY_USER_ID: str = "2"
    RAILWAY_CART_ID: str = "1"

    # The phone store authenticates by username cookie
    PHONESTORE_USERNAME: Optional[str] = "dinh2707"

    # ============================================
    # CATALOG DATABASES (SQLAlchemy URLs)
    # ============================================

    RAILWAY_DATABASE_URL: Optional[str] = None
    MICROSERVICE_DATABASE_URL: Optional[str] = None
    PHONESTORE_DATABASE_URL: Optional[str] = None

    # Sources scanned when aggregating the catalog
    CATALOG_SOURCES: List[Source] = [Source.RAILWAY, Source.MICROSERVICE, Source.PHONEWEBSITE]

    # Maximum rows read from a product table
    CATALOG_ROW_LIMIT: int = 1000

    PLACEHOLDER_IMAGE_URL: str = (
        "https://images.unsplash.com/photo-1511707171634-5f897ff02aa9"
        "?q=80&w=600&auto=format&fit=crop"
    )

    # ============================================
    # NETWORK / POLLING
    # ============================================

    HTTP_TIMEOUT_SECONDS: float = 20.0
    ORDER_POLL_INTERVAL_SECONDS: float = 2.0
    ORDER_POLL_TIMEOUT_SECONDS: float = 120.0

    # ============================================
    # APPLICATION SETTINGS
    # ============================================

    APP_NAME: str = "Unified Storefront"
    DEBUG: bool = False
    CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]

    class Config:
        env_file = ".env"
        case_sensitive = True

    def database_urls(self) -> Dict[Source, str]:
        """Configured catalog databases, keyed by source"""
        candidates = {
            Source.RAILWAY: self.RAILWAY_DATABASE_URL,
            Source.MICROSERVICE: self.MICROSERVICE_DATABASE_URL,
            Source.PHONEWEBSITE: self.PHONESTORE_DATABASE_URL,
        }
        urls = {}
        for source, raw in candidates.items():
            url = normalize_database_url(raw)
            if url:
                urls[source] = url
        return urls

def normalize_database_url(raw: Optional[str]) -> Optional[str]:
    """Strip stray quotes and pick the PyMySQL driver for bare mysql:// URLs"""
    if not raw:
        return None
    url = raw.strip().strip('"').strip("'")
    if not url:
        return None
    if url.startswith("mysql://"):
        url = "mysql+pymysql://" + url[len("mysql://"):]
    return url

# Global settings instance
settings = Settings()

def get_settings() -> Settings:
    """FastAPI dependency returning the process settings"""
    return settings

def get_source_info(current: Optional[Settings] = None) -> dict:
    """Summarize configured sources without exposing credentials"""
    current = current or settings
    databases = current.database_urls()
    return {
        "catalog_sources": [source.value for source in current.CATALOG_SOURCES],
        "databases": [source.value for source in databases],
        "remote_services": {
            "railway": {
                "base_url": current.RAILWAY_BASE_URL,
                "has_token": bool(current.RAILWAY_AUTH_TOKEN),
            },
            "ecom": {
                "base_url": current.ECOM_BASE_URL,
                "has_token": bool(current.ECOM_AUTH_TOKEN),
            },
            "phonestore": {
                "base_url": current.PHONESTORE_BASE_URL,
                "has_username": bool(current.PHONESTORE_USERNAME),
            },
        },
        "order_polling": {
            "interval_seconds": current.ORDER_POLL_INTERVAL_SECONDS,
            "timeout_seconds": current.ORDER_POLL_TIMEOUT_SECONDS,
        },
    }
