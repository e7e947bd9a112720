from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import requests

from shopadmin.config import settings
from shopadmin.models.image import ImageRef, LocalFile, ReorderItem
from shopadmin.schemas.product_schema import CreatedProduct
from shopadmin.utils.log import get_logger

log = get_logger("shopadmin.catalog", "CATALOG")


class CatalogApiError(Exception):
    """Raised for any failed call to the catalog backend (HTTP status or transport)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CatalogAdapter(ABC):
    """
    Remote operations against the catalog backend. Every call takes the bearer
    token explicitly and signals failure by raising.
    """

    @abstractmethod
    def get_product_detail(self, token: Optional[str], product_id: str) -> Dict:
        ...

    @abstractmethod
    def create_product(self, token: str, payload: Dict) -> CreatedProduct:
        ...

    @abstractmethod
    def update_product(self, token: str, product_id: str, payload: Dict) -> None:
        ...

    @abstractmethod
    def delete_product_image(self, token: str, product_id: str, image_id: str) -> None:
        ...

    @abstractmethod
    def delete_variant_image(self, token: str, variant_id: str, image_id: str) -> None:
        ...

    @abstractmethod
    def upload_product_image(
        self,
        token: str,
        product_id: str,
        file: LocalFile,
        alt_text: Optional[str] = None,
        position: Optional[int] = None,
    ) -> ImageRef:
        ...

    @abstractmethod
    def upload_variant_image(
        self,
        token: str,
        variant_id: str,
        file: LocalFile,
        alt_text: Optional[str] = None,
        position: Optional[int] = None,
    ) -> ImageRef:
        ...

    @abstractmethod
    def reorder_product_images(self, token: str, product_id: str, items: List[ReorderItem]) -> None:
        ...

    @abstractmethod
    def reorder_variant_images(self, token: str, variant_id: str, items: List[ReorderItem]) -> None:
        ...

    def health_check(self) -> bool:
        return True


def _unwrap(body):
    # the backend answers {"data": ...}, sometimes nested twice
    for _ in range(2):
        if isinstance(body, dict) and isinstance(body.get("data"), dict):
            body = body["data"]
    return body


class HttpCatalogAdapter(CatalogAdapter):
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.API_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _request(self, method: str, path: str, token: Optional[str] = None, **kwargs):
        headers = kwargs.pop("headers", {})
        if token:
            headers["Authorization"] = f"Bearer {token}"
        url = self._url(path)
        try:
            r = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            log.error(f"{method} {path} transport error: {e}")
            raise CatalogApiError(f"{method} {path} failed: {e}") from e

        if not r.ok:
            try:
                body = r.json()
            except ValueError:
                body = {}
            message = None
            if isinstance(body, dict):
                message = body.get("message") or body.get("error") or body.get("errors")
            message = str(message) if message else f"HTTP error! status: {r.status_code}"
            log.warning(f"{method} {path} -> {r.status_code}: {message}")
            raise CatalogApiError(message, status_code=r.status_code)

        if not r.content:
            return None
        try:
            return r.json()
        except ValueError:
            return None

    def get_product_detail(self, token, product_id):
        body = self._request("GET", f"/products/{product_id}/detail", token)
        detail = _unwrap(body)
        if not isinstance(detail, dict):
            raise CatalogApiError("Product detail response was empty")
        return detail

    def create_product(self, token, payload):
        body = self._request("POST", "/products", token, json=payload)
        data = _unwrap(body)
        if not isinstance(data, dict) or not (data.get("uuid") or data.get("id")):
            raise CatalogApiError("Failed to get product UUID from response")
        return CreatedProduct.model_validate(data)

    def update_product(self, token, product_id, payload):
        self._request("PATCH", f"/products/{product_id}", token, json=payload)

    def delete_product_image(self, token, product_id, image_id):
        self._request("DELETE", f"/products/{product_id}/images/{image_id}", token)

    def delete_variant_image(self, token, variant_id, image_id):
        self._request("DELETE", f"/variants/{variant_id}/images/{image_id}", token)

    def _upload(self, token, path, file: LocalFile, alt_text, position) -> ImageRef:
        form = {}
        if alt_text:
            form["alt_text"] = alt_text
        if position is not None:
            form["position"] = str(position)
        files = {"image": (file.filename, file.content, file.content_type)}
        body = self._request("POST", path, token, files=files, data=form)
        data = _unwrap(body) or {}
        return ImageRef(
            url=data.get("url") or "",
            alt_text=data.get("alt_text"),
            position=data.get("position"),
            identifier=data.get("uuid"),
        )

    def upload_product_image(self, token, product_id, file, alt_text=None, position=None):
        return self._upload(token, f"/products/{product_id}/images/upload", file, alt_text, position)

    def upload_variant_image(self, token, variant_id, file, alt_text=None, position=None):
        return self._upload(token, f"/variants/{variant_id}/images/upload", file, alt_text, position)

    def reorder_product_images(self, token, product_id, items):
        payload = {"items": [it.to_payload() for it in items]}
        self._request("PATCH", f"/products/{product_id}/images/reorder", token, json=payload)

    def reorder_variant_images(self, token, variant_id, items):
        payload = {"items": [it.to_payload() for it in items]}
        self._request("PATCH", f"/variants/{variant_id}/images/reorder", token, json=payload)

    def health_check(self) -> bool:
        try:
            self.session.request("GET", self._url("/products?page=1&limit=1"), timeout=5)
            return True
        except requests.RequestException:
            return False
