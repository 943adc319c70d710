"""
Remote Cart Backend Factory
Maps catalog sources to the cart protocol that owns their remote cart
"""
from typing import Dict, Optional

import httpx

from storefront.commerce.ecom_backend import EcomBackend
from storefront.commerce.interface import RemoteCartBackend
from storefront.commerce.phonestore_backend import PhoneStoreBackend
from storefront.commerce.railway_backend import RailwayBackend
from storefront.config import SOURCES, CartProtocol, Settings, Source, settings as default_settings

class CommerceFactory:
    """Factory for creating remote cart backend instances"""

    _backends = {
        CartProtocol.ECOM: EcomBackend,
        CartProtocol.RAILWAY: RailwayBackend,
        CartProtocol.PHONESTORE: PhoneStoreBackend,
    }

    @staticmethod
    def create_backend(
        protocol: CartProtocol,
        client: httpx.AsyncClient,
        config: Optional[Settings] = None,
    ) -> RemoteCartBackend:
        """
        Create a backend instance

        Args:
            protocol: Remote cart protocol
            client: Shared HTTP client used for every gateway call
            config: Settings (defaults to the process settings)
        """
        try:
            backend_class = CommerceFactory._backends[protocol]
        except KeyError:
            raise ValueError(f"Unsupported cart protocol: {protocol}") from None
        return backend_class(client, config or default_settings)

    @staticmethod
    def create_backends(
        client: httpx.AsyncClient,
        config: Optional[Settings] = None,
    ) -> Dict[str, RemoteCartBackend]:
        """One backend per catalog source that has a remote cart"""
        backends: Dict[str, RemoteCartBackend] = {}
        by_protocol: Dict[CartProtocol, RemoteCartBackend] = {}
        for source in (Source.RAILWAY, Source.MICROSERVICE, Source.PHONEWEBSITE):
            protocol = SOURCES[source].cart_protocol
            if protocol not in by_protocol:
                by_protocol[protocol] = CommerceFactory.create_backend(protocol, client, config)
            backends[source.value] = by_protocol[protocol]
        return backends
