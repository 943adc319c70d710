"""
Cart Reconciler
Keeps the local cart optimistic and pushes each change to the remote cart
that owns the item. Remote failures become notices; local state is not
rolled back.
"""
import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional

from storefront.catalog.normalizer import build_canonical_product, build_cart_item, is_numeric_id
from storefront.commerce.interface import RemoteCartBackend, id_key
from storefront.config import Settings, settings as default_settings
from storefront.errors import InvalidProductIdError
from storefront.models import CartItem, Product
from storefront.utils.notices import NoticeBoard

logger = logging.getLogger(__name__)

class CartReconciler:
    """Local cart state plus per-source remote synchronization"""

    def __init__(
        self,
        backends: Mapping[str, RemoteCartBackend],
        notices: Optional[NoticeBoard] = None,
        config: Optional[Settings] = None,
    ):
        self.backends = dict(backends)
        self.notices = notices if notices is not None else NoticeBoard()
        self.config = config or default_settings
        self._items: Dict[str, CartItem] = {}

    # ------------------------------------------------------------------
    # Local state
    # ------------------------------------------------------------------

    @property
    def items(self) -> List[CartItem]:
        return list(self._items.values())

    def get(self, key: str) -> Optional[CartItem]:
        return self._items.get(key)

    def find_item(self, key: str, source_id: str, product_id: Any) -> Optional[CartItem]:
        """
        Look an item up by key, else by (source, product id)

        Catalog rows are keyed by table while refreshed remote items are keyed
        by remote entry id; both name the same product.
        """
        item = self._items.get(key)
        if item is not None:
            return item
        wanted = id_key(product_id)
        for candidate in self._items.values():
            if candidate.source_id == source_id and id_key(candidate.id) == wanted:
                return candidate
        return None

    def quantity_of(self, key: str) -> int:
        item = self._items.get(key)
        return item.quantity if item else 0

    def total(self) -> float:
        return sum(item.line_total for item in self._items.values())

    def count(self) -> int:
        return sum(item.quantity for item in self._items.values())

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def add_to_cart(self, row: Mapping[str, Any], row_index: int, source: str, table: str) -> Optional[CartItem]:
        """Add one unit of a catalog row; rejected when its id is not numeric"""
        product = build_canonical_product(row, row_index, source, table, self.config)
        return await self.add_product(product)

    async def add_product(self, product: Product) -> Optional[CartItem]:
        if not is_numeric_id(product.id):
            error = InvalidProductIdError(product.source_id, product.source_table, product.id)
            self.notices.error(str(error), source=product.source_id)
            return None

        existing = self.find_item(product.key, product.source_id, product.id)
        if existing is not None:
            existing.quantity += 1
            if existing.phone_store_product is None:
                existing.phone_store_product = product.phone_store_product
            item = existing
        else:
            item = build_cart_item(product, quantity=1)
            self._items[item.key] = item

        await self.sync_cart_item(item, "add", item.quantity)
        return item

    async def update_quantity(self, key: str, delta: int) -> Optional[CartItem]:
        """
        Apply delta to a local item, flooring at zero

        Returns:
            The updated item, or None when it left the cart (or was never there)
        """
        item = self._items.get(key)
        if item is None or delta == 0:
            return item

        quantity = max(0, item.quantity + delta)
        if quantity == 0:
            del self._items[key]
            await self.sync_cart_item(item, "remove", 0)
            return None

        item.quantity = quantity
        await self.sync_cart_item(item, "increase" if delta > 0 else "decrease", quantity)
        return item

    async def remove(self, key: str) -> None:
        item = self._items.pop(key, None)
        if item is not None:
            await self.sync_cart_item(item, "remove", 0)

    def clear(self) -> None:
        self._items.clear()

    # ------------------------------------------------------------------
    # Remote sync
    # ------------------------------------------------------------------

    async def sync_cart_item(self, item: CartItem, action: str, quantity: int) -> bool:
        """Push one local transition to the owning remote cart; failures become notices"""
        backend = self.backends.get(item.source_id)
        if backend is None:
            logger.debug("No remote cart for %s; keeping %s local only", item.source_id, item.key)
            return False
        try:
            await backend.sync(item, action, quantity)
        except Exception as e:
            logger.warning("Cart sync (%s) for %s failed: %s", action, item.key, e)
            self.notices.warning(f"Could not sync '{item.name}' to the remote cart: {e}", source=backend.name)
            return False
        return True

    async def _fetch_remote(self, backend: RemoteCartBackend) -> Optional[List[CartItem]]:
        try:
            return await backend.fetch_cart_items()
        except Exception as e:
            logger.warning("Remote cart listing from %s failed: %s", backend.name, e)
            self.notices.warning(f"Could not load the remote cart: {e}", source=backend.name)
            return None

    async def refresh_remote_cart(self) -> List[CartItem]:
        """
        Replace the local cart with the merged remote carts

        A source whose cart cannot be read keeps its current local items.
        """
        backends = list(dict.fromkeys(self.backends.values()))
        results = await asyncio.gather(*(self._fetch_remote(backend) for backend in backends))

        merged: Dict[str, CartItem] = {}
        for backend, remote_items in zip(backends, results):
            if remote_items is None:
                for item in self._items.values():
                    if self.backends.get(item.source_id) is backend:
                        merged[item.key] = item
                continue
            for item in remote_items:
                merged[item.key] = item

        self._items = merged
        return self.items
