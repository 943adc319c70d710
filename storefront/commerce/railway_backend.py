"""
Railway Cart Backend
The remote cart is keyed by product id and tracks quantity itself, with
separate increase, decrease and remove verbs
"""
from typing import Any, Dict, List

from storefront.commerce.interface import RemoteCartBackend, extract_records
from storefront.config import Source
from storefront.errors import CartSyncError
from storefront.models import CartItem
from storefront.utils.http import normalize_bearer_token

class RailwayBackend(RemoteCartBackend):
    """Cart protocol of the railway cart/order service"""

    name = "railway"
    catalog_source = Source.RAILWAY
    order_source = Source.RAILWAY.value
    entry_id_aliases = ("productId", "product_id", "id")

    def auth_headers(self) -> Dict[str, str]:
        if not self.config.RAILWAY_AUTH_TOKEN:
            return {}
        return {"Authorization": normalize_bearer_token(self.config.RAILWAY_AUTH_TOKEN)}

    @property
    def cart_id(self) -> str:
        return self.config.RAILWAY_CART_ID

    async def add(self, item: CartItem, quantity: int) -> None:
        await self.request(
            "POST",
            "railway/add-product",
            params={
                "userId": self.config.RAILWAY_USER_ID,
                "productId": item.id,
                "cartId": self.cart_id,
            },
        )

    async def set_quantity(self, item: CartItem, quantity: int, action: str) -> None:
        if action == "increase":
            path = f"railway/increase-productQty/{self.cart_id}/{item.id}"
        elif action == "decrease":
            path = f"railway/decrease-productQty/{self.cart_id}/{item.id}"
        else:
            raise CartSyncError(self.name, f"Railway cart cannot apply '{action}'")
        await self.request("PUT", path)

    async def remove(self, item: CartItem) -> None:
        await self.request("DELETE", f"railway/remove-product/{self.cart_id}/{item.id}")

    async def list_remote_cart(self) -> List[Dict]:
        data = await self.request(
            "GET",
            "railway/cart",
            params={"cartId": self.cart_id, "userId": self.config.RAILWAY_USER_ID},
        )
        return extract_records(data)

    async def list_orders(self) -> Any:
        return await self.request("GET", "railway/orders", params={"userId": self.config.RAILWAY_USER_ID})
