import copy
import time
from typing import Callable, Dict, List, Optional, Tuple
from uuid import uuid4

from shopadmin.adapters.catalog_api import CatalogAdapter, CatalogApiError
from shopadmin.models.image import ImageRef
from shopadmin.schemas.product_schema import CreatedProduct, CreatedVariant

_SCALAR_FIELDS = ("title", "description", "product_type", "vendor", "status", "tags")
_VARIANT_FIELDS = ("title", "price", "sku", "inventory_policy", "option1", "available", "cost")


class MockCatalogAdapter(CatalogAdapter):
    """
    In-memory catalog backend.

    Every call is appended to `calls` as a tuple (operation, *ids) so tests can
    assert on order and count. `fail_on` makes an operation raise for matching
    calls.
    """

    def __init__(self, delay_ms: int = 0):
        self.delay = delay_ms / 1000.0
        self.products: Dict[str, Dict] = {}
        self.calls: List[Tuple] = []
        self._failures: List[Tuple[str, Callable[..., bool], str]] = []

    # --- test helpers ---

    def fail_on(self, operation: str, when: Optional[Callable[..., bool]] = None, message: str = "Simulated failure"):
        self._failures.append((operation, when or (lambda *args: True), message))

    def calls_to(self, operation: str) -> List[Tuple]:
        return [c for c in self.calls if c[0] == operation]

    @property
    def write_calls(self) -> List[Tuple]:
        return [c for c in self.calls if c[0] != "get_product_detail"]

    def seed_product(self, detail: Dict) -> Dict:
        """Store a product detail as-is (ids included) and return it."""
        product = copy.deepcopy(detail)
        product.setdefault("uuid", uuid4().hex)
        product.setdefault("images", [])
        for v in product.setdefault("variants", []):
            v.setdefault("uuid", uuid4().hex)
            v.setdefault("images", [])
        self.products[product["uuid"]] = product
        return copy.deepcopy(product)

    # --- internals ---

    def _enter(self, operation: str, token: Optional[str], *args, auth: bool = True):
        self.calls.append((operation,) + args)
        if self.delay:
            time.sleep(self.delay)
        if auth and not token:
            raise CatalogApiError("Unauthorized", status_code=401)
        for op, when, message in self._failures:
            if op == operation and when(*args):
                raise CatalogApiError(message, status_code=500)

    def _product(self, product_id: str) -> Dict:
        product = self.products.get(product_id)
        if product is None:
            raise CatalogApiError("Product not found", status_code=404)
        return product

    def _variant(self, variant_id: str) -> Dict:
        for product in self.products.values():
            for v in product["variants"]:
                if v["uuid"] == variant_id:
                    return v
        raise CatalogApiError("Variant not found", status_code=404)

    @staticmethod
    def _new_variant(data: Dict) -> Dict:
        v = {k: data.get(k) for k in _VARIANT_FIELDS}
        v["uuid"] = uuid4().hex
        v["images"] = []
        return v

    @staticmethod
    def _store_image(images: List[Dict], file, alt_text, position) -> ImageRef:
        image_id = uuid4().hex
        stored = {
            "uuid": image_id,
            "url": f"https://cdn.mock.local/{image_id}/{file.filename}",
            "alt_text": alt_text,
            "position": position if position is not None else len(images),
        }
        images.append(stored)
        return ImageRef.from_server(stored)

    @staticmethod
    def _delete_image(images: List[Dict], image_id: str) -> None:
        for n, img in enumerate(images):
            if img["uuid"] == image_id:
                del images[n]
                return
        raise CatalogApiError("Image not found", status_code=404)

    @staticmethod
    def _reorder(images: List[Dict], items) -> None:
        positions = {it.image_identifier: it.position for it in items}
        for img in images:
            if img["uuid"] in positions:
                img["position"] = positions[img["uuid"]]
        images.sort(key=lambda img: img.get("position") or 0)

    # --- CatalogAdapter ---

    def get_product_detail(self, token, product_id):
        self._enter("get_product_detail", token, product_id, auth=False)
        return copy.deepcopy(self._product(product_id))

    def create_product(self, token, payload):
        self._enter("create_product", token)
        product = {k: copy.deepcopy(payload.get(k)) for k in _SCALAR_FIELDS}
        product["uuid"] = uuid4().hex
        product["images"] = []
        product["variants"] = [self._new_variant(v) for v in payload.get("variants") or []]
        self.products[product["uuid"]] = product
        return CreatedProduct(
            identifier=product["uuid"],
            variants=[CreatedVariant(identifier=v["uuid"], title=v["title"] or "") for v in product["variants"]],
        )

    def update_product(self, token, product_id, payload):
        self._enter("update_product", token, product_id)
        product = self._product(product_id)
        for k in _SCALAR_FIELDS:
            if k in payload:
                product[k] = copy.deepcopy(payload[k])
        existing = {v["uuid"]: v for v in product["variants"]}
        variants = []
        for data in payload.get("variants") or []:
            current = existing.get(data.get("uuid"))
            if current is None:
                variants.append(self._new_variant(data))
                continue
            for k in _VARIANT_FIELDS:
                if k in data:
                    current[k] = data[k]
            variants.append(current)
        product["variants"] = variants

    def delete_product_image(self, token, product_id, image_id):
        self._enter("delete_product_image", token, product_id, image_id)
        self._delete_image(self._product(product_id)["images"], image_id)

    def delete_variant_image(self, token, variant_id, image_id):
        self._enter("delete_variant_image", token, variant_id, image_id)
        self._delete_image(self._variant(variant_id)["images"], image_id)

    def upload_product_image(self, token, product_id, file, alt_text=None, position=None):
        self._enter("upload_product_image", token, product_id, file.filename)
        return self._store_image(self._product(product_id)["images"], file, alt_text, position)

    def upload_variant_image(self, token, variant_id, file, alt_text=None, position=None):
        self._enter("upload_variant_image", token, variant_id, file.filename)
        return self._store_image(self._variant(variant_id)["images"], file, alt_text, position)

    def reorder_product_images(self, token, product_id, items):
        self._enter("reorder_product_images", token, product_id)
        self._reorder(self._product(product_id)["images"], items)

    def reorder_variant_images(self, token, variant_id, items):
        self._enter("reorder_variant_images", token, variant_id)
        self._reorder(self._variant(variant_id)["images"], items)
