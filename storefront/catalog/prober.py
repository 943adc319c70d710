"""
Schema Prober
Heuristically picks the table holding products for a source
"""
from typing import Dict, Optional, Sequence, Tuple

from storefront.config import Source

PRODUCT_TABLE_KEYWORDS: Tuple[str, ...] = ("product", "catalog", "item", "goods")

# Sources that look for a more specific table first
SOURCE_TABLE_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    Source.PHONEWEBSITE.value: ("phone", "product"),
}

def table_keywords(source: Optional[str] = None) -> Tuple[str, ...]:
    key = source.value if isinstance(source, Source) else source
    return SOURCE_TABLE_KEYWORDS.get(key, PRODUCT_TABLE_KEYWORDS)

def pick_product_table(tables: Optional[Sequence[str]], source: Optional[str] = None) -> Optional[str]:
    """
    Pick the product table from a listing

    Keywords are tried in priority order against every table name
    (case-insensitive substring). Falls back to the first table; None when
    the listing is empty.
    """
    if not tables:
        return None
    lowered = [(name, name.lower()) for name in tables]
    for keyword in table_keywords(source):
        for name, lower in lowered:
            if keyword in lower:
                return name
    return tables[0]
