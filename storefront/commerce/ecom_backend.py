"""
Third-party E-commerce Cart Backend
The remote cart assigns its own cart-entry ids, so every change other than an
add looks the entry up first
"""
import logging
from typing import Any, Dict, List, Optional

from storefront.commerce.interface import RemoteCartBackend, RemoteCartEntry, extract_records, id_key
from storefront.config import Source
from storefront.models import CartItem
from storefront.utils.http import normalize_bearer_token

logger = logging.getLogger(__name__)

class EcomBackend(RemoteCartBackend):
    """Cart protocol of the third-party e-commerce microservice"""

    name = "ecom"
    catalog_source = Source.MICROSERVICE
    order_source = Source.ECOM.value
    entry_id_aliases = ("_id", "id", "cartItemId", "cart_item_id")

    def auth_headers(self) -> Dict[str, str]:
        if not self.config.ECOM_AUTH_TOKEN:
            return {}
        return {"Authorization": normalize_bearer_token(self.config.ECOM_AUTH_TOKEN)}

    async def add(self, item: CartItem, quantity: int) -> None:
        await self.request("POST", "ecom/cart/add", json={"productId": item.id})

    async def _find_entry(self, item: CartItem) -> Optional[RemoteCartEntry]:
        entry = (await self.remote_entries()).get(id_key(item.id))
        if entry is None or entry.entry_id is None:
            logger.info("Product %s is not in the ecom cart; nothing to sync", item.id)
            return None
        return entry

    async def set_quantity(self, item: CartItem, quantity: int, action: str) -> None:
        entry = await self._find_entry(item)
        if entry is None:
            return
        # several lines for one product collapse into the first
        for extra_id in entry.entry_ids[1:]:
            await self.request("DELETE", f"ecom/cart/{extra_id}")
        await self.request("PUT", f"ecom/cart/{entry.entry_id}", json={"quantity": quantity})

    async def remove(self, item: CartItem) -> None:
        entry = await self._find_entry(item)
        if entry is None:
            return
        for entry_id in entry.entry_ids:
            await self.request("DELETE", f"ecom/cart/{entry_id}")

    async def list_remote_cart(self) -> List[Dict]:
        return extract_records(await self.request("GET", "ecom/cart"))

    async def list_orders(self) -> Any:
        return await self.request("GET", "ecom/orders")
