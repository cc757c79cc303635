"""
Remote deliverable store (persistence).

The remote inventory API is the authoritative holder of every variant's pool.
This module provides *only* the read/overwrite primitives against it; it holds no
rules about consumption or undo.

Endpoints (relative to the API base URL):
- GET  shops/{shop}/products
- GET  shops/{shop}/products/{product}/deliverables/{variant}
- PUT  shops/{shop}/products/{product}/deliverables/overwrite/{variant}
       body: {"deliverables": "<newline-joined items>"}
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

import requests

from domain import deliverable_codec
from domain.catalog import Product, Variant
from domain.deliverable_codec import DecodeError

logger = logging.getLogger(__name__)

_RETRY_BACKOFF_SECONDS = 0.5


class RemoteStoreError(RuntimeError):
    """A remote call failed; `status_code` is None for transport errors."""

    def __init__(
        self,
        message: str,
        *,
        method: str,
        endpoint: str,
        status_code: Optional[int] = None,
    ):
        self.method = method
        self.endpoint = endpoint
        self.status_code = status_code
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        """5xx, 429 and transport failures may succeed later; other 4xx will not."""

        if self.status_code is None:
            return True
        return self.status_code >= 500 or self.status_code == 429


class RemoteReadFailure(RemoteStoreError):
    pass


class RemoteWriteFailure(RemoteStoreError):
    pass


class DeliverableStore(ABC):
    """
    Read/overwrite access to remote pools.

    Subclasses implement the raw transport; decoding and encoding are shared.
    """

    @abstractmethod
    def fetch_raw(self, product_id: str, variant_id: str) -> Any:
        """Return the pool payload exactly as the remote store sent it."""

    @abstractmethod
    def put_deliverables(self, product_id: str, variant_id: str, deliverables: str) -> None:
        """Atomically replace the whole pool with the newline-joined string."""

    @abstractmethod
    def list_products(self) -> List[Product]:
        """Return the remote catalog with every variant's stock set to 0."""

    def read_pool(self, product_id: str, variant_id: str) -> List[str]:
        """
        Read and decode a variant's pool, failing on an unrecognized payload.

        Array elements that could not be read are logged and left out.

        Raises:
            RemoteReadFailure: If the read itself fails.
            DecodeError: If the payload matches no supported shape.
        """

        decoded = deliverable_codec.decode_pool(self.fetch_raw(product_id, variant_id))
        if decoded.skipped:
            logger.warning(
                f"Skipped {len(decoded.skipped)} unsupported element(s) in pool {product_id}/{variant_id}",
                extra={
                    "product_id": product_id,
                    "variant_id": variant_id,
                    "payload_shape": decoded.shape.value,
                    "skipped_types": list(decoded.skipped),
                },
            )
        logger.debug(f"Pool {product_id}/{variant_id} holds {len(decoded.items)} item(s)")
        return decoded.items

    def fetch_pool(self, product_id: str, variant_id: str) -> List[str]:
        """
        Read and decode a variant's pool.

        An unrecognized payload shape is logged and treated as an empty pool.

        Raises:
            RemoteReadFailure: If the read itself fails.
        """

        try:
            return self.read_pool(product_id, variant_id)
        except DecodeError as e:
            logger.warning(
                f"Unrecognized deliverables payload for {product_id}/{variant_id}; treating pool as empty",
                extra={
                    "product_id": product_id,
                    "variant_id": variant_id,
                    "payload_type": e.payload_type,
                    "decode_error": str(e),
                },
            )
            return []

    def overwrite(self, product_id: str, variant_id: str, items: Sequence[str]) -> None:
        """
        Encode items and overwrite the variant's pool.

        Raises:
            RemoteWriteFailure: If the overwrite is rejected or does not complete.
        """

        self.put_deliverables(product_id, variant_id, deliverable_codec.encode(items))
        logger.info(
            f"Overwrote pool {product_id}/{variant_id} with {len(items)} item(s)",
            extra={"product_id": product_id, "variant_id": variant_id, "pool_size": len(items)},
        )


class HttpDeliverableStore(DeliverableStore):
    """DeliverableStore backed by the inventory REST API via `requests`."""

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        shop_id: str,
        timeout: float = 30,
        read_retries: int = 2,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self.api_key = api_key
        self.shop_id = shop_id
        self.timeout = timeout
        self.read_retries = read_retries
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    def _pool_endpoint(self, product_id: str, variant_id: str) -> str:
        return f"shops/{self.shop_id}/products/{product_id}/deliverables/{variant_id}"

    def _overwrite_endpoint(self, product_id: str, variant_id: str) -> str:
        return f"shops/{self.shop_id}/products/{product_id}/deliverables/overwrite/{variant_id}"

    def _request(self, method: str, endpoint: str, *, json: Any = None, error_cls=RemoteStoreError) -> Any:
        url = f"{self.base_url}{endpoint}"
        try:
            resp = self.session.request(
                method,
                url,
                json=json,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise error_cls(
                f"{method} {endpoint} failed: {e}",
                method=method,
                endpoint=endpoint,
            ) from e

        if resp.status_code >= 400:
            raise error_cls(
                f"{method} {endpoint} failed ({resp.status_code}): {resp.text[:200]}",
                method=method,
                endpoint=endpoint,
                status_code=resp.status_code,
            )

        if resp.status_code == 204 or not resp.content:
            return None
        if "json" in resp.headers.get("Content-Type", ""):
            try:
                return resp.json()
            except ValueError as e:
                raise error_cls(
                    f"{method} {endpoint} returned a malformed JSON body: {e}",
                    method=method,
                    endpoint=endpoint,
                    status_code=resp.status_code,
                ) from e
        return resp.text

    def _read(self, endpoint: str) -> Any:
        attempt = 0
        while True:
            try:
                return self._request("GET", endpoint, error_cls=RemoteReadFailure)
            except RemoteReadFailure as e:
                if not e.retryable or attempt >= self.read_retries:
                    raise
                attempt += 1
                logger.warning(
                    f"Retrying GET {endpoint} (attempt {attempt}/{self.read_retries}): {e}",
                    extra={"endpoint": endpoint, "status_code": e.status_code},
                )
                time.sleep(_RETRY_BACKOFF_SECONDS * attempt)

    def fetch_raw(self, product_id: str, variant_id: str) -> Any:
        return self._read(self._pool_endpoint(product_id, variant_id))

    def put_deliverables(self, product_id: str, variant_id: str, deliverables: str) -> None:
        self._request(
            "PUT",
            self._overwrite_endpoint(product_id, variant_id),
            json={"deliverables": deliverables},
            error_cls=RemoteWriteFailure,
        )

    def list_products(self) -> List[Product]:
        data = self._read(f"shops/{self.shop_id}/products")
        rows = data if isinstance(data, list) else (data or {}).get("data") or []

        products: List[Product] = []
        for row in rows:
            variants = {
                str(v["id"]): Variant(id=str(v["id"]), name=str(v.get("name") or "Unknown"))
                for v in row.get("variants") or []
            }
            products.append(Product(id=str(row["id"]), name=str(row.get("name") or ""), variants=variants))
        return products


__all__ = [
    "DeliverableStore",
    "HttpDeliverableStore",
    "RemoteReadFailure",
    "RemoteStoreError",
    "RemoteWriteFailure",
]
