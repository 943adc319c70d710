"""
Storefront session
One shopper's view: catalog, optimistic cart, merged orders and the notice banner
"""
from typing import Optional

import httpx

from storefront.catalog.reader import CatalogReader, HttpCatalogReader
from storefront.commerce.factory import CommerceFactory
from storefront.config import Settings, settings as default_settings
from storefront.services.cart import CartReconciler
from storefront.services.orders import OrderAggregator, OrderPoller
from storefront.services.products import ProductCatalog
from storefront.utils.notices import NoticeBoard


class StorefrontSession:
    """
    Wires the session components around a single HTTP client

    Usage:
        async with StorefrontSession() as session:
            await session.catalog.load_all_products()
            await session.cart.add_product(session.catalog.products[0])
            await session.poller.poll_until_complete()
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
        reader: Optional[CatalogReader] = None,
    ):
        self.config = config or default_settings
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=self.config.HTTP_TIMEOUT_SECONDS)
        self.notices = NoticeBoard()

        backends = CommerceFactory.create_backends(self.client, self.config)
        self.catalog = ProductCatalog(
            reader or HttpCatalogReader(self.client, self.config),
            notices=self.notices,
            config=self.config,
        )
        self.cart = CartReconciler(backends, notices=self.notices, config=self.config)
        self.orders = OrderAggregator(list(backends.values()))
        self.poller = OrderPoller(self.orders, notices=self.notices, config=self.config)

    async def load_best_selling(self):
        return await self.catalog.load_best_selling(self.orders)

    def cart_total(self) -> float:
        return self.cart.total()

    def cart_count(self) -> int:
        return self.cart.count()

    async def close(self) -> None:
        self.poller.cancel()
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "StorefrontSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
