"""
Row Normalizer
Converts arbitrary catalog rows and remote JSON objects into canonical fields
using case-insensitive alias resolution
"""
import math
import re
from decimal import Decimal
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from storefront.config import Settings, Source, settings as default_settings
from storefront.models import CartItem, PhoneStoreProduct, Product

Number = Union[int, float]

# Logical field -> ordered aliases. The first alias present (any key casing)
# with a non-null value wins.
FIELD_ALIASES: Dict[str, tuple] = {
    "name": ("name", "title", "productname", "itemname"),
    "price": ("price", "unitprice", "cost", "amount"),
    "image": (
        "imageUrl", "image_url", "image", "thumbnail", "thumb", "img",
        "pictureUri", "picture_uri",
    ),
    "phone_name": ("name", "productname", "product_name", "title", "itemname"),
    "phone_discount": ("discount", "sale", "discountpercent", "percentdiscount", "percent_off"),
    "phone_original": ("original", "originalprice", "original_price", "baseprice", "listprice", "price"),
    "phone_image": ("imageurl", "image_url", "image", "thumbnail", "thumb", "img"),
}

ID_ALIASES: Dict[str, tuple] = {
    Source.RAILWAY.value: ("product_id", "productid", "id"),
}
DEFAULT_ID_ALIASES = ("id", "product_id", "productid", "catalogitemid", "itemid")

_ABSOLUTE_URL = re.compile(r"^https?://", re.IGNORECASE)

def resolve_field(row: Optional[Mapping[str, Any]], aliases: Iterable[str]) -> Any:
    """Return the value of the first alias present in row with a non-null value"""
    if not row:
        return None
    key_map = {}
    for key in row.keys():
        key_map.setdefault(str(key).lower(), key)
    for alias in aliases:
        found = key_map.get(alias.lower())
        if found is not None and row[found] is not None:
            return row[found]
    return None

def resolve(row: Optional[Mapping[str, Any]], field: str) -> Any:
    """Resolve a logical field through FIELD_ALIASES"""
    return resolve_field(row, FIELD_ALIASES[field])

def resolve_image(row: Optional[Mapping[str, Any]]) -> Any:
    """First image alias with a non-blank value; blank strings fall through to the next alias"""
    if not row:
        return None
    for alias in FIELD_ALIASES["image"]:
        value = resolve_field(row, [alias])
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        return value
    return None

def to_number(value: Any) -> Optional[Number]:
    """Coerce to a finite number; integral values come back as int"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    if isinstance(value, (int, float, Decimal, str)):
        try:
            numeric = float(value)
        except (TypeError, ValueError):
            return None
    else:
        return None
    if not math.isfinite(numeric):
        return None
    return int(numeric) if numeric.is_integer() else numeric

def is_numeric_id(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)

def normalize_price(value: Any) -> Optional[float]:
    """Empty/null -> None; otherwise a finite float or None"""
    if value is None or value == "":
        return None
    numeric = to_number(value)
    return float(numeric) if numeric is not None else None

def resolve_id(row: Optional[Mapping[str, Any]], source: str) -> Optional[Number]:
    """First id alias for the source whose value coerces to a finite number"""
    for alias in ID_ALIASES.get(_source_value(source), DEFAULT_ID_ALIASES):
        numeric = to_number(resolve_field(row, [alias]))
        if numeric is not None:
            return numeric
    return None

def normalize_phone_store_image_url(image_url: Any, base_url: str) -> str:
    if not image_url:
        return ""
    raw = str(image_url).strip()
    if not raw:
        return ""
    if _ABSOLUTE_URL.match(raw):
        return raw
    path = raw if raw.startswith("/") else f"/{raw}"
    return f"{base_url.rstrip('/')}{path}"

def build_phone_store_product(
    row: Mapping[str, Any],
    row_index: int,
    source: str,
    config: Optional[Settings] = None,
) -> Optional[PhoneStoreProduct]:
    """Derive the record the phone store cart expects; None without a numeric id"""
    config = config or default_settings
    product_id = resolve_id(row, source)
    if product_id is None:
        return None
    name = resolve(row, "phone_name")
    discount = normalize_price(resolve(row, "phone_discount"))
    original = normalize_price(resolve(row, "phone_original"))
    return PhoneStoreProduct(
        id=product_id,
        name=str(name) if name is not None else f"Item {row_index + 1}",
        discount_percent=discount if discount is not None else 0,
        original_price=original if original is not None else 0,
        image_url=normalize_phone_store_image_url(resolve(row, "phone_image"), config.PHONESTORE_BASE_URL),
    )

def build_canonical_product(
    row: Mapping[str, Any],
    row_index: int,
    source: str,
    table: str,
    config: Optional[Settings] = None,
) -> Product:
    """
    Normalize one catalog row

    Args:
        row: Raw column -> value mapping
        row_index: Position of the row in its table listing
        source: Source the row came from
        table: Table the row came from

    Returns:
        Canonical Product. The id is numeric when any id alias coerces to a
        number, otherwise a synthesized "<source>-<table>-<index>" string.
    """
    config = config or default_settings
    source_id = _source_value(source)
    numeric_id = resolve_id(row, source_id)
    name = resolve(row, "name")
    price = normalize_price(resolve(row, "price"))

    phone_product = None
    if source_id == Source.PHONEWEBSITE.value:
        phone_product = build_phone_store_product(row, row_index, source_id, config)
        if phone_product is not None and math.isfinite(phone_product.original_price):
            price = float(phone_product.effective_price())

    product_id = numeric_id if numeric_id is not None else f"{source_id}-{table}-{row_index}"
    return Product(
        source_id=source_id,
        source_table=table,
        row_index=row_index,
        key=f"{source_id}-{table}-{product_id}",
        id=product_id,
        name=str(name) if name is not None else f"Item {row_index + 1}",
        price=price,
        image=resolve_image(row) or config.PLACEHOLDER_IMAGE_URL,
        phone_store_product=phone_product,
        raw_row=dict(row),
    )

def build_cart_item(product: Product, quantity: int = 1) -> CartItem:
    return CartItem(
        key=product.key,
        id=product.id,
        name=product.name,
        price=product.price,
        quantity=quantity,
        source_id=product.source_id,
        source_table=product.source_table,
        image=product.image,
        phone_store_product=product.phone_store_product,
    )

def _source_value(source: Any) -> str:
    return source.value if isinstance(source, Source) else str(source)
