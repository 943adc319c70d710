"""
HTTP forwarding helpers shared by the proxy gateway and the remote cart backends
"""
import json
from typing import Any, AsyncIterator, Dict, Optional, Tuple
from urllib.parse import quote

import httpx
from fastapi import Request

from storefront.config import settings


def parse_body(text: str) -> Any:
    """Parse a response body as JSON, falling back to the raw text; empty -> None"""
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text

async def forward_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None,
    json_body: Any = None,
) -> Tuple[int, Any]:
    """
    Relay one request upstream

    Returns:
        Tuple of (status_code, parsed body)
    """
    kwargs: Dict[str, Any] = {"headers": headers or {}}
    if params:
        kwargs["params"] = params
    if json_body is not None:
        kwargs["json"] = json_body
    response = await client.request(method, url, **kwargs)
    return response.status_code, parse_body(response.text)

def normalize_bearer_token(token: Optional[str]) -> str:
    if not token:
        return ""
    return token if token.lower().startswith("bearer ") else f"Bearer {token}"

def strip_bearer(value: Optional[str]) -> str:
    if not value:
        return ""
    return value[7:] if value.lower().startswith("bearer ") else value

def build_forward_headers(
    request: Request,
    extra_headers: Optional[Dict[str, str]] = None,
    auth_fallback: Optional[str] = None,
) -> Dict[str, str]:
    """
    Build upstream headers: Authorization passthrough (else the configured
    fallback token) and cookie passthrough
    """
    headers = dict(extra_headers or {})
    incoming_auth = request.headers.get("authorization")
    if incoming_auth:
        headers["Authorization"] = incoming_auth
    elif auth_fallback:
        headers["Authorization"] = normalize_bearer_token(auth_fallback)
    cookie = request.headers.get("cookie")
    if cookie:
        headers["Cookie"] = cookie
    return headers

def build_phone_store_cookie(username: Optional[str]) -> str:
    """The phone store authenticates by a plain user=<name> cookie"""
    if not username:
        return ""
    return f"user={quote(username, safe='')}"

def upstream_url(base_url: str, path: str) -> str:
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"

async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    """FastAPI dependency yielding a short-lived upstream client"""
    async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
        yield client
