"""
Proxy Gateway Endpoints
Relays browser/session calls to upstream cart and order services that are not
directly reachable: Authorization passthrough (else a configured token),
cookie passthrough, and the phone store's synthesized user cookie
"""
import logging
from typing import Any, Dict, Optional

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from storefront.config import Settings, get_settings
from storefront.utils.http import (
    build_forward_headers,
    build_phone_store_cookie,
    forward_request,
    get_http_client,
    strip_bearer,
    upstream_url,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/proxy", tags=["proxy"])

JSON_HEADERS = {"Accept": "application/json", "Content-Type": "application/json"}

BODYLESS_STATUSES = (204, 304)

def _mirror(status: int, data: Any) -> Response:
    """Answer with the upstream status; an empty or bodyless upstream reply stays empty"""
    if data is None or status in BODYLESS_STATUSES:
        return Response(status_code=status)
    return JSONResponse(status_code=status, content=data)

async def _relay(
    client: httpx.AsyncClient,
    label: str,
    method: str,
    url: str,
    headers: Dict[str, str],
    params: Optional[Dict[str, Any]] = None,
    json_body: Any = None,
) -> Response:
    """Forward upstream and mirror its status; transport failures answer 502"""
    logger.info(
        "%s %s %s (auth=%s, cookie=%s)",
        label, method, url, bool(headers.get("Authorization")), bool(headers.get("Cookie")),
    )
    try:
        status, data = await forward_request(client, method, url, headers=headers, params=params, json_body=json_body)
    except httpx.HTTPError as e:
        logger.error("%s proxy failed: %s", label, e)
        return JSONResponse(status_code=502, content={"error": f"{label} proxy failed", "detail": str(e)})
    logger.debug("%s response %s", label, status)
    return _mirror(status, data)

def _missing(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": message})

async def _json_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}

# ============================================
# RAILWAY
# ============================================

@router.post("/railway/add-product")
async def railway_add_product(
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
    config: Settings = Depends(get_settings),
):
    """Add a product; falls back to an increase when it is already in the cart"""
    body = await _json_body(request)
    user_id = request.query_params.get("userId") or body.get("userId")
    product_id = request.query_params.get("productId") or body.get("productId")
    cart_id = request.query_params.get("cartId") or body.get("cartId")
    if not user_id or not product_id:
        return _missing("Missing userId or productId")

    headers = build_forward_headers(request, JSON_HEADERS, config.RAILWAY_AUTH_TOKEN)
    url = upstream_url(config.RAILWAY_BASE_URL, "/ecom/cart/add-product")
    try:
        status, data = await forward_request(
            client, "POST", url, headers=headers,
            params={"userId": user_id, "productId": product_id},
        )
    except httpx.HTTPError as e:
        logger.error("Railway proxy failed: %s", e)
        return JSONResponse(status_code=502, content={"error": "Railway proxy failed", "detail": str(e)})

    message = data.get("message") if isinstance(data, dict) else None
    already_in_cart = status == 502 and isinstance(message, str) and "already in the cart" in message.lower()
    if already_in_cart and cart_id:
        increase_url = upstream_url(config.RAILWAY_BASE_URL, f"/ecom/cart/increase-productQty/{cart_id}/{product_id}")
        return await _relay(client, "Railway", "PUT", increase_url, headers)

    return _mirror(status, data)

@router.put("/railway/increase-productQty/{cart_id}/{product_id}")
async def railway_increase(
    cart_id: str,
    product_id: str,
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
    config: Settings = Depends(get_settings),
):
    headers = build_forward_headers(request, JSON_HEADERS, config.RAILWAY_AUTH_TOKEN)
    url = upstream_url(config.RAILWAY_BASE_URL, f"/ecom/cart/increase-productQty/{cart_id}/{product_id}")
    return await _relay(client, "Railway", "PUT", url, headers)

@router.put("/railway/decrease-productQty/{cart_id}/{product_id}")
async def railway_decrease(
    cart_id: str,
    product_id: str,
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
    config: Settings = Depends(get_settings),
):
    headers = build_forward_headers(request, JSON_HEADERS, config.RAILWAY_AUTH_TOKEN)
    url = upstream_url(config.RAILWAY_BASE_URL, f"/ecom/cart/decrease-productQty/{cart_id}/{product_id}")
    return await _relay(client, "Railway", "PUT", url, headers)

@router.delete("/railway/remove-product/{cart_id}/{product_id}")
async def railway_remove(
    cart_id: str,
    product_id: str,
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
    config: Settings = Depends(get_settings),
):
    headers = build_forward_headers(request, JSON_HEADERS, config.RAILWAY_AUTH_TOKEN)
    url = upstream_url(config.RAILWAY_BASE_URL, f"/ecom/cart/remove-product/{cart_id}/{product_id}")
    return await _relay(client, "Railway", "DELETE", url, headers)

@router.get("/railway/cart")
async def railway_cart(
    request: Request,
    cartId: Optional[str] = None,
    userId: Optional[str] = None,
    client: httpx.AsyncClient = Depends(get_http_client),
    config: Settings = Depends(get_settings),
):
    if not cartId and not userId:
        return _missing("Missing cartId or userId")
    headers = build_forward_headers(request, {}, config.RAILWAY_AUTH_TOKEN)
    url = upstream_url(config.RAILWAY_BASE_URL, f"/ecom/cart/products/{cartId or userId}")
    return await _relay(client, "Railway cart", "GET", url, headers)

@router.get("/railway/orders")
async def railway_orders(
    request: Request,
    userId: Optional[str] = None,
    client: httpx.AsyncClient = Depends(get_http_client),
    config: Settings = Depends(get_settings),
):
    if not userId:
        return _missing("Missing userId")
    headers = build_forward_headers(request, {}, config.RAILWAY_AUTH_TOKEN)
    url = upstream_url(config.RAILWAY_BASE_URL, f"/ecom/orders/orders/{userId}")
    return await _relay(client, "Railway orders", "GET", url, headers)

# ============================================
# THIRD-PARTY ECOM
# ============================================

@router.get("/ecom/cart")
async def ecom_cart(
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
    config: Settings = Depends(get_settings),
):
    headers = build_forward_headers(request, {}, config.ECOM_AUTH_TOKEN)
    return await _relay(client, "Ecommerce", "GET", upstream_url(config.ECOM_BASE_URL, "/api/cart"), headers)

@router.post("/ecom/cart/add")
async def ecom_cart_add(
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
    config: Settings = Depends(get_settings),
):
    headers = build_forward_headers(request, {"Content-Type": "application/json"}, config.ECOM_AUTH_TOKEN)
    url = upstream_url(config.ECOM_BASE_URL, "/api/cart/add")
    return await _relay(client, "Ecommerce", "POST", url, headers, json_body=await _json_body(request))

@router.put("/ecom/cart/{entry_id}")
async def ecom_cart_update(
    entry_id: str,
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
    config: Settings = Depends(get_settings),
):
    headers = build_forward_headers(request, {"Content-Type": "application/json"}, config.ECOM_AUTH_TOKEN)
    url = upstream_url(config.ECOM_BASE_URL, f"/api/cart/{entry_id}")
    return await _relay(client, "Ecommerce", "PUT", url, headers, json_body=await _json_body(request))

@router.delete("/ecom/cart/{entry_id}")
async def ecom_cart_delete(
    entry_id: str,
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
    config: Settings = Depends(get_settings),
):
    headers = build_forward_headers(request, {}, config.ECOM_AUTH_TOKEN)
    url = upstream_url(config.ECOM_BASE_URL, f"/api/cart/{entry_id}")
    return await _relay(client, "Ecommerce", "DELETE", url, headers)

@router.get("/ecom/orders")
async def ecom_orders(
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
    config: Settings = Depends(get_settings),
):
    """The orders endpoint also reads the raw token from x-access-token / token"""
    headers = build_forward_headers(request, {}, config.ECOM_AUTH_TOKEN)
    raw_token = strip_bearer(headers.get("Authorization"))
    if raw_token:
        headers["x-access-token"] = raw_token
        headers["token"] = raw_token
    url = upstream_url(config.ECOM_BASE_URL, "/api/orders/my-orders")
    return await _relay(client, "Ecommerce orders", "GET", url, headers)

# ============================================
# PHONE STORE
# ============================================

@router.get("/phonestore/cart")
async def phonestore_cart(
    request: Request,
    username: Optional[str] = None,
    client: httpx.AsyncClient = Depends(get_http_client),
    config: Settings = Depends(get_settings),
):
    if not username:
        return _missing("Missing username")
    headers = build_forward_headers(request)
    headers["Cookie"] = build_phone_store_cookie(username)
    return await _relay(client, "PhoneStore", "GET", upstream_url(config.PHONESTORE_BASE_URL, "/api/cart"), headers)

@router.post("/phonestore/cart")
async def phonestore_cart_add(
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
    config: Settings = Depends(get_settings),
):
    body = await _json_body(request)
    headers = build_forward_headers(request, {"Content-Type": "application/json"})
    if body.get("username"):
        headers["Cookie"] = build_phone_store_cookie(body["username"])
    url = upstream_url(config.PHONESTORE_BASE_URL, "/api/cart")
    return await _relay(client, "PhoneStore", "POST", url, headers, json_body=body)

@router.delete("/phonestore/cart")
async def phonestore_cart_delete(
    request: Request,
    id: Optional[str] = None,
    username: Optional[str] = None,
    client: httpx.AsyncClient = Depends(get_http_client),
    config: Settings = Depends(get_settings),
):
    if not id:
        return _missing("Missing id")
    headers = build_forward_headers(request)
    if username:
        headers["Cookie"] = build_phone_store_cookie(username)
    url = upstream_url(config.PHONESTORE_BASE_URL, "/api/cart")
    return await _relay(client, "PhoneStore", "DELETE", url, headers, params={"id": id})

@router.get("/phonestore/orders")
async def phonestore_orders(
    request: Request,
    username: Optional[str] = None,
    client: httpx.AsyncClient = Depends(get_http_client),
    config: Settings = Depends(get_settings),
):
    if not username:
        return _missing("Missing username")
    headers = build_forward_headers(request)
    headers["Cookie"] = build_phone_store_cookie(username)
    url = upstream_url(config.PHONESTORE_BASE_URL, "/api/orders")
    return await _relay(client, "PhoneStore orders", "GET", url, headers)
