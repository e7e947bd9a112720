import json

import pytest
import requests

from shopadmin.adapters.catalog_api import CatalogApiError, HttpCatalogAdapter
from shopadmin.models.image import LocalFile, ReorderItem


class _Response:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body
        self.content = b"" if body is None else json.dumps(body).encode()

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._body is None:
            raise ValueError("no body")
        return self._body


class _Session:
    """Records each request and answers from a queue."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _adapter(*responses):
    session = _Session(*responses)
    return HttpCatalogAdapter(base_url="http://catalog.test/api/", timeout=5, session=session), session


def test_create_product_unwraps_data():
    adapter, session = _adapter(
        _Response(201, {"data": {"uuid": "p9", "variants": [{"uuid": "v9", "title": "Red", "sku": "R"}]}})
    )
    created = adapter.create_product("tok", {"title": "Shirt", "images": []})

    assert created.identifier == "p9"
    assert [(v.identifier, v.title) for v in created.variants] == [("v9", "Red")]
    method, url, kwargs = session.requests[0]
    assert (method, url) == ("POST", "http://catalog.test/api/products")
    assert kwargs["headers"]["Authorization"] == "Bearer tok"
    assert kwargs["json"] == {"title": "Shirt", "images": []}
    assert kwargs["timeout"] == 5


def test_create_product_without_uuid_fails():
    adapter, _ = _adapter(_Response(200, {"data": {}}))
    with pytest.raises(CatalogApiError, match="Failed to get product UUID from response"):
        adapter.create_product("tok", {})


def test_error_message_from_body():
    adapter, _ = _adapter(_Response(422, {"message": "SKU already exists"}))
    with pytest.raises(CatalogApiError) as e:
        adapter.update_product("tok", "p1", {"title": "x"})
    assert str(e.value) == "SKU already exists"
    assert e.value.status_code == 422


def test_error_without_body_uses_status():
    adapter, _ = _adapter(_Response(500))
    with pytest.raises(CatalogApiError, match="HTTP error! status: 500"):
        adapter.delete_product_image("tok", "p1", "img1")


def test_transport_error_is_wrapped():
    adapter, _ = _adapter(requests.ConnectionError("refused"))
    with pytest.raises(CatalogApiError) as e:
        adapter.get_product_detail("tok", "p1")
    assert e.value.status_code is None


def test_upload_sends_multipart_without_position():
    adapter, session = _adapter(_Response(201, {"data": {"uuid": "i1", "url": "https://cdn/i1.jpg"}}))

    ref = adapter.upload_variant_image("tok", "v1", LocalFile("a.jpg", b"abc", "image/jpeg"), "Alt")

    assert ref.identifier == "i1"
    method, url, kwargs = session.requests[0]
    assert (method, url) == ("POST", "http://catalog.test/api/variants/v1/images/upload")
    assert kwargs["files"] == {"image": ("a.jpg", b"abc", "image/jpeg")}
    assert kwargs["data"] == {"alt_text": "Alt"}


def test_reorder_payload():
    adapter, session = _adapter(_Response(204))
    adapter.reorder_product_images("tok", "p1", [ReorderItem("b", 0), ReorderItem("a", 1)])
    method, url, kwargs = session.requests[0]
    assert (method, url) == ("PATCH", "http://catalog.test/api/products/p1/images/reorder")
    assert kwargs["json"] == {"items": [{"imageId": "b", "position": 0}, {"imageId": "a", "position": 1}]}


def test_paths_for_delete_and_detail():
    adapter, session = _adapter(
        _Response(204),
        _Response(200, {"data": {"data": {"uuid": "p1", "variants": []}}}),
    )
    adapter.delete_variant_image("tok", "v1", "img2")
    detail = adapter.get_product_detail("tok", "p1")

    assert [(m, u) for m, u, _ in session.requests] == [
        ("DELETE", "http://catalog.test/api/variants/v1/images/img2"),
        ("GET", "http://catalog.test/api/products/p1/detail"),
    ]
    assert detail["uuid"] == "p1"
