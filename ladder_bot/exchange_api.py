from __future__ import annotations

import base64
import datetime as dt
from dataclasses import dataclass
import logging
import os
from typing import Any, Dict, Optional

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
import requests

from .market import ExchangeApiError, OrderId

logger = logging.getLogger("ladder_bot")

ORDER_BOOK_PATH = "/api/v1/orderbook"
ORDERS_PATH = "/api/v1/orders"


@dataclass
class ExchangeCredentials:
    api_key_id: str
    private_key_path: str


class ExchangeClient:
    def __init__(
        self,
        base_url: str,
        credentials: Optional[ExchangeCredentials] = None,
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.credentials = credentials
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self.private_key: Optional[rsa.RSAPrivateKey] = None
        if credentials is not None:
            self.private_key = _load_private_key_from_file(credentials.private_key_path)

    def get(self, path: str) -> Any:
        return self._request("GET", path)

    def post(self, path: str, payload: Dict[str, Any]) -> Any:
        return self._request("POST", path, payload=payload)

    def delete(self, path: str) -> Any:
        return self._request("DELETE", path)

    def get_order_book(self) -> Any:
        return self.get(ORDER_BOOK_PATH)

    def create_order(self, price: float, volume: float) -> Any:
        return self.post(ORDERS_PATH, payload={"price": price, "volume": volume})

    def cancel_order(self, order_id: OrderId) -> Any:
        return self.delete(f"{ORDERS_PATH}/{order_id}")

    def _request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Any:
        method = method.upper().strip()
        url = self.base_url + path

        headers: Dict[str, str] = {}
        if payload is not None:
            headers["Content-Type"] = "application/json"
        if self.private_key is not None:
            headers.update(self._signed_headers(method=method, path=path))

        try:
            response = self.session.request(
                method=method,
                url=url,
                json=payload,
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise ExchangeApiError(f"network_error method={method} path={path}: {exc}") from exc

        if response.status_code >= 400:
            body_preview = response.text[:500]
            raise ExchangeApiError(
                f"http_error status={response.status_code} method={method} path={path} body={body_preview}"
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise ExchangeApiError(f"invalid_json method={method} path={path}") from exc

    def _signed_headers(self, method: str, path: str) -> Dict[str, str]:
        if self.credentials is None or self.private_key is None:
            return {}
        timestamp = str(int(dt.datetime.now().timestamp() * 1000))
        signature = _sign_request(self.private_key, timestamp, method, path)
        return {
            "X-ACCESS-KEY": self.credentials.api_key_id,
            "X-ACCESS-SIGNATURE": signature,
            "X-ACCESS-TIMESTAMP": timestamp,
        }


class HttpMarket:
    """Market capability backed by a remote exchange simulator."""

    def __init__(self, client: ExchangeClient) -> None:
        self.client = client

    def get_order_book(self) -> list[tuple[float, float]]:
        return parse_order_book(self.client.get_order_book())

    def place_order(self, price: float, signed_volume: float) -> Optional[OrderId]:
        try:
            payload = self.client.create_order(price, signed_volume)
        except ExchangeApiError as exc:
            logger.warning("place_order_error price=%s volume=%s error=%s", price, signed_volume, exc)
            return None
        if not isinstance(payload, dict):
            return None
        return payload.get("order_id")

    def cancel_order(self, order_id: OrderId) -> bool:
        payload = self.client.cancel_order(order_id)
        if isinstance(payload, dict) and "cancelled" in payload:
            return bool(payload["cancelled"])
        return True


def parse_order_book(payload: Any) -> list[tuple[float, float]]:
    """Accepts ``{"levels": [...]}`` or a bare list of ``[price, volume]``
    pairs or ``{"price": .., "volume": ..}`` objects."""
    if isinstance(payload, dict):
        payload = payload.get("levels", [])
    if not isinstance(payload, list):
        raise ExchangeApiError(f"invalid_order_book payload_type={type(payload).__name__}")

    book: list[tuple[float, float]] = []
    for row in payload:
        try:
            if isinstance(row, dict):
                book.append((float(row["price"]), float(row["volume"])))
            else:
                price, volume = row
                book.append((float(price), float(volume)))
        except (KeyError, TypeError, ValueError) as exc:
            raise ExchangeApiError(f"invalid_order_book_row row={row!r}") from exc
    return book


def resolve_credentials(
    api_key_id: Optional[str],
    private_key_path: Optional[str],
) -> Optional[ExchangeCredentials]:
    resolved_key_id = (api_key_id or os.getenv("EXCHANGE_API_KEY_ID") or "").strip()
    resolved_key_path = (private_key_path or os.getenv("EXCHANGE_PRIVATE_KEY_PATH") or "").strip()
    if not resolved_key_id and not resolved_key_path:
        return None
    if not resolved_key_id:
        raise ValueError("Missing API key id. Pass --api-key-id or set EXCHANGE_API_KEY_ID.")
    if not resolved_key_path:
        raise ValueError("Missing private key path. Pass --private-key-path or set EXCHANGE_PRIVATE_KEY_PATH.")
    return ExchangeCredentials(api_key_id=resolved_key_id, private_key_path=resolved_key_path)


def _load_private_key_from_file(file_path: str) -> rsa.RSAPrivateKey:
    with open(file_path, "rb") as f:
        return serialization.load_pem_private_key(f.read(), password=None)


def _sign_request(private_key: rsa.RSAPrivateKey, timestamp: str, method: str, path: str) -> str:
    path_without_query = path.split("?")[0]
    message = f"{timestamp}{method}{path_without_query}".encode("utf-8")
    signature = private_key.sign(
        message,
        padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=padding.PSS.DIGEST_LENGTH),
        hashes.SHA256(),
    )
    return base64.b64encode(signature).decode("utf-8")
