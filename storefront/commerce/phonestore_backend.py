"""
Phone Store Cart Backend
The remote cart only supports discrete add and delete, so a quantity change
is a delete and/or a run of single adds. Authentication is by username.
"""
import logging
from typing import Any, Dict, List, Optional

from storefront.catalog.normalizer import build_phone_store_product, normalize_price, resolve
from storefront.commerce.interface import (
    RemoteCartBackend,
    extract_records,
    id_key,
    nested_product,
)
from storefront.config import Source
from storefront.errors import CartSyncError, MissingConfigurationError
from storefront.models import CartItem

logger = logging.getLogger(__name__)

class PhoneStoreBackend(RemoteCartBackend):
    """Cart protocol of the phone store"""

    name = "phonestore"
    catalog_source = Source.PHONEWEBSITE
    order_source = Source.PHONEWEBSITE.value
    entry_id_aliases = ("id", "_id", "cartId", "cart_id")

    def require_username(self) -> str:
        username = (self.config.PHONESTORE_USERNAME or "").strip()
        if not username:
            raise MissingConfigurationError(self.name, "PHONESTORE_USERNAME")
        return username

    async def add(self, item: CartItem, quantity: int) -> None:
        await self.reconcile(item, quantity)

    async def set_quantity(self, item: CartItem, quantity: int, action: str) -> None:
        await self.reconcile(item, quantity)

    async def remove(self, item: CartItem) -> None:
        await self.reconcile(item, 0)

    async def reconcile(self, item: CartItem, target: int) -> int:
        """
        Bring the remote quantity of one product to target

        Deletes the existing entry when the remote holds more than target (or
        target is zero), then adds one unit per call until target is reached.
        Adds run one after another; the remote has no set-quantity call.

        Returns:
            Number of add calls issued
        """
        username = self.require_username()
        entry = (await self.remote_entries()).get(id_key(item.id))
        current = entry.quantity if entry else 0

        if entry is not None and (current > target or target <= 0):
            for entry_id in entry.entry_ids:
                await self.request("DELETE", "phonestore/cart", params={"id": entry_id, "username": username})
            current = 0

        if target <= 0:
            return 0

        adds = target - current if current < target else 0
        if adds:
            payload = self._product_payload(item)
            for _ in range(adds):
                await self.request("POST", "phonestore/cart", json={"username": username, "product": payload})
        logger.debug("Phone store product %s: remote %s -> %s (%s adds)", item.id, current, target, adds)
        return adds

    def _product_payload(self, item: CartItem) -> Dict[str, Any]:
        if item.phone_store_product is None:
            raise CartSyncError(self.name, f"'{item.name}' has no phone store product record")
        return item.phone_store_product.to_payload()

    async def list_remote_cart(self) -> List[Dict]:
        username = self.require_username()
        return extract_records(await self.request("GET", "phonestore/cart", params={"username": username}))

    async def list_orders(self) -> Any:
        username = self.require_username()
        return await self.request("GET", "phonestore/orders", params={"username": username})

    def entry_price(self, view: Dict) -> Optional[float]:
        record = build_phone_store_product(view, 0, self.catalog_source.value, self.config)
        if record is not None and record.original_price:
            return float(record.effective_price())
        return normalize_price(resolve(view, "price"))

    def normalize_cart_entry(self, entry: Dict, index: int) -> Optional[CartItem]:
        item = super().normalize_cart_entry(entry, index)
        if item is None:
            return None
        view = {**entry, **nested_product(entry), "id": item.id}
        item.phone_store_product = build_phone_store_product(view, index, self.catalog_source.value, self.config)
        return item
