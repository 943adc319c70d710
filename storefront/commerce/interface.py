"""
Remote Cart Backend Interface
Abstract base class for the remote cart/order protocols (ecom, railway, phone store)
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from storefront.catalog.normalizer import (
    normalize_price,
    resolve,
    resolve_field,
    resolve_image,
    to_number,
)
from storefront.config import Settings, Source, settings as default_settings
from storefront.errors import UpstreamError
from storefront.models import CartItem
from storefront.utils.http import parse_body

logger = logging.getLogger(__name__)

CART_ACTIONS = ("add", "increase", "decrease", "remove")

PRODUCT_ID_ALIASES = ("productId", "product_id", "productid")
NESTED_PRODUCT_ID_ALIASES = ("id", "productId", "product_id", "_id")
QUANTITY_ALIASES = ("quantity", "qty")

CART_ENVELOPE_KEYS = ("items", "cartItems", "cart_items", "products", "data", "cart", "rows", "results")

@dataclass
class RemoteCartEntry:
    """Where a product sits in a remote cart"""
    product_id: Any
    quantity: int
    entry_ids: List[Any] = field(default_factory=list)

    @property
    def entry_id(self) -> Any:
        return self.entry_ids[0] if self.entry_ids else None

def extract_records(payload: Any, keys=CART_ENVELOPE_KEYS, depth: int = 2) -> List[Dict]:
    """Find the list of records inside an arbitrary JSON envelope"""
    if isinstance(payload, list):
        return [record for record in payload if isinstance(record, dict)]
    if not isinstance(payload, dict) or depth <= 0:
        return []
    for key in keys:
        value = payload.get(key)
        if isinstance(value, list):
            return [record for record in value if isinstance(record, dict)]
    for key in keys:
        value = payload.get(key)
        if isinstance(value, dict):
            records = extract_records(value, keys, depth - 1)
            if records:
                return records
    return []

def id_key(value: Any) -> Optional[str]:
    """Comparable form of a product id (1, 1.0 and "1" collapse together)"""
    numeric = to_number(value)
    if numeric is not None:
        return str(numeric)
    if value is None or value == "":
        return None
    return str(value)

def nested_product(entry: Dict) -> Dict:
    product = resolve_field(entry, ["product"])
    return product if isinstance(product, dict) else {}

def entry_product_id(entry: Dict) -> Any:
    value = resolve_field(entry, PRODUCT_ID_ALIASES)
    if value is not None:
        return value
    product = resolve_field(entry, ["product"])
    if isinstance(product, dict):
        return resolve_field(product, NESTED_PRODUCT_ID_ALIASES)
    return product

def entry_quantity(entry: Dict) -> int:
    quantity = to_number(resolve_field(entry, QUANTITY_ALIASES))
    return int(quantity) if quantity is not None else 1

class RemoteCartBackend(ABC):
    """
    One remote cart/order protocol, reached through the gateway's /proxy routes

    Subclasses set:
        name: label used in notices and order listings
        catalog_source: catalog source whose products this cart holds
        order_source: label stamped on orders from this backend
        entry_id_aliases: keys naming the remote cart-entry id
    """

    name: str = ""
    catalog_source: Source
    order_source: str = ""
    entry_id_aliases: tuple = ("id", "_id")

    def __init__(self, client: httpx.AsyncClient, config: Optional[Settings] = None):
        self.client = client
        self.config = config or default_settings

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def proxy_url(self, path: str) -> str:
        return f"{self.config.API_URL.rstrip('/')}/proxy/{path.lstrip('/')}"

    def auth_headers(self) -> Dict[str, str]:
        return {}

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        """Call the gateway; non-2xx and transport failures raise UpstreamError"""
        kwargs: Dict[str, Any] = {"headers": self.auth_headers()}
        if params:
            kwargs["params"] = params
        if json is not None:
            kwargs["json"] = json
        url = self.proxy_url(path)
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise UpstreamError(self.name, detail=str(e) or type(e).__name__) from e
        data = parse_body(response.text)
        if not response.is_success:
            detail = (data.get("error") or data.get("message")) if isinstance(data, dict) else data
            raise UpstreamError(self.name, response.status_code, detail)
        logger.debug("%s %s -> %s", method, url, response.status_code)
        return data

    # ------------------------------------------------------------------
    # Cart capabilities
    # ------------------------------------------------------------------

    @abstractmethod
    async def add(self, item: CartItem, quantity: int) -> None:
        """Put the product in the remote cart (quantity is the new local quantity)"""
        pass

    @abstractmethod
    async def set_quantity(self, item: CartItem, quantity: int, action: str) -> None:
        """Move the remote quantity to a non-zero target"""
        pass

    @abstractmethod
    async def remove(self, item: CartItem) -> None:
        pass

    @abstractmethod
    async def list_remote_cart(self) -> List[Dict]:
        """Raw remote cart entries"""
        pass

    @abstractmethod
    async def list_orders(self) -> Any:
        """Raw order listing payload"""
        pass

    async def sync(self, item: CartItem, action: str, quantity: int) -> None:
        """Apply one local cart transition to the remote cart"""
        if action not in CART_ACTIONS:
            raise ValueError(f"Unknown cart action: {action}")
        if action == "add":
            await self.add(item, quantity)
        elif action == "remove" or quantity <= 0:
            await self.remove(item)
        else:
            await self.set_quantity(item, quantity, action)

    # ------------------------------------------------------------------
    # Remote cart reading
    # ------------------------------------------------------------------

    def entry_id(self, entry: Dict) -> Any:
        return resolve_field(entry, self.entry_id_aliases)

    async def remote_entries(self) -> Dict[str, RemoteCartEntry]:
        """Map product id -> where it sits in the remote cart"""
        entries: Dict[str, RemoteCartEntry] = {}
        for record in await self.list_remote_cart():
            key = id_key(entry_product_id(record))
            if key is None:
                continue
            quantity = entry_quantity(record)
            entry_id = self.entry_id(record)
            if key in entries:
                entries[key].quantity += quantity
                if entry_id is not None:
                    entries[key].entry_ids.append(entry_id)
                continue
            entries[key] = RemoteCartEntry(
                product_id=entry_product_id(record),
                quantity=quantity,
                entry_ids=[entry_id] if entry_id is not None else [],
            )
        return entries

    def normalize_cart_entry(self, entry: Dict, index: int) -> Optional[CartItem]:
        """Canonical cart item for a remote entry, keyed by source + remote entry id"""
        product = nested_product(entry)
        view = {**entry, **product}
        product_id = to_number(entry_product_id(entry))
        if product_id is None:
            logger.debug("Skipping %s cart entry without a numeric product id: %s", self.name, entry)
            return None
        entry_id = self.entry_id(entry)
        if entry_id is None:
            entry_id = product_id
        name = resolve(view, "name")
        return CartItem(
            key=f"{self.catalog_source.value}-{entry_id}",
            id=product_id,
            name=str(name) if name is not None else f"Item {index + 1}",
            price=self.entry_price(view),
            quantity=max(1, entry_quantity(entry)),
            source_id=self.catalog_source.value,
            source_table="cart",
            image=resolve_image(view) or self.config.PLACEHOLDER_IMAGE_URL,
        )

    def entry_price(self, view: Dict) -> Optional[float]:
        return normalize_price(resolve(view, "price"))

    async def fetch_cart_items(self) -> List[CartItem]:
        items = []
        for index, entry in enumerate(await self.list_remote_cart()):
            item = self.normalize_cart_entry(entry, index)
            if item is not None:
                items.append(item)
        return items
