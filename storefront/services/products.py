"""
Product catalog aggregation
Probes every catalog source, normalizes its rows and ranks best sellers
against order history
"""
import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Sequence

from storefront.catalog.normalizer import build_canonical_product
from storefront.catalog.prober import pick_product_table
from storefront.catalog.reader import CatalogReader
from storefront.commerce.interface import id_key
from storefront.config import ORDER_SOURCE_ALIASES, Settings, Source, settings as default_settings
from storefront.models import BestSeller, Order, Product
from storefront.services.orders import OrderAggregator
from storefront.utils.notices import NoticeBoard

logger = logging.getLogger(__name__)

def product_join_key(source: str, product_id) -> Optional[str]:
    key = id_key(product_id)
    if key is None:
        return None
    return f"{source}:{key}"

def rank_best_sellers(products: Sequence[Product], orders: Iterable[Order]) -> List[BestSeller]:
    """
    Sum ordered quantities per (source, product id) and join them to the catalog

    Products sold but missing from the catalog are dropped. Ties in quantity
    break by descending price.
    """
    index: Dict[str, Product] = {}
    for product in products:
        key = product_join_key(product.source_id, product.id)
        if key is not None and key not in index:
            index[key] = product

    sold: Dict[str, int] = {}
    for order in orders:
        source = ORDER_SOURCE_ALIASES.get(order.source_id, order.source_id)
        for line in order.lines:
            key = product_join_key(source, line.product_id)
            if key is None:
                continue
            sold[key] = sold.get(key, 0) + line.quantity

    ranked = [
        BestSeller(**index[key].model_dump(), total_sold=quantity)
        for key, quantity in sold.items()
        if key in index
    ]
    ranked.sort(key=lambda item: (-item.total_sold, -(item.price or 0)))
    return ranked

class ProductCatalog:
    """Unified product listing across all catalog sources"""

    def __init__(
        self,
        reader: CatalogReader,
        notices: Optional[NoticeBoard] = None,
        config: Optional[Settings] = None,
        sources: Optional[Sequence[str]] = None,
    ):
        self.reader = reader
        self.notices = notices if notices is not None else NoticeBoard()
        self.config = config or default_settings
        self.sources = [
            source.value if isinstance(source, Source) else str(source)
            for source in (sources if sources is not None else self.config.CATALOG_SOURCES)
        ]
        self.products: List[Product] = []

    async def load_products(self, source: str) -> List[Product]:
        """List tables, pick the product table and normalize its rows"""
        tables = await self.reader.list_tables(source)
        table = pick_product_table(tables, source)
        if table is None:
            self.notices.info("No product table found; this source is skipped", source=source)
            return []

        data = await self.reader.get_rows(source, table)
        rows = (data.get("rows") or [])[: self.config.CATALOG_ROW_LIMIT]
        products = [
            build_canonical_product(row, index, source, table, self.config)
            for index, row in enumerate(rows)
        ]
        logger.info("Loaded %s products from %s.%s", len(products), source, table)
        return products

    async def _load_source(self, source: str) -> List[Product]:
        try:
            return await self.load_products(source)
        except Exception as e:
            logger.warning("Catalog load from %s failed: %s", source, e)
            return []

    async def load_all_products(self) -> List[Product]:
        """Every source loads independently; a failing source contributes nothing"""
        results = await asyncio.gather(*(self._load_source(source) for source in self.sources))
        self.products = [product for source_products in results for product in source_products]
        return self.products

    async def load_best_selling(self, orders: OrderAggregator) -> List[BestSeller]:
        if not self.products:
            await self.load_all_products()
        result = await orders.fetch_orders_once()
        return rank_best_sellers(self.products, result.orders)
