from fastapi.testclient import TestClient

from shopadmin.adapters.mock_catalog import MockCatalogAdapter
from shopadmin.api.dependencies import get_catalog_adapter, get_session_service
from shopadmin.main import app
from shopadmin.services.edit_session_service import EditSessionService

catalog = MockCatalogAdapter()
service = EditSessionService(catalog)

client = TestClient(app)

AUTH = {"Authorization": "Bearer test-token"}
BASE = "/api/admin/product-drafts"


def setup_module(module):
    app.dependency_overrides[get_catalog_adapter] = lambda: catalog
    app.dependency_overrides[get_session_service] = lambda: service
    catalog.seed_product(
        {
            "uuid": "api-p1",
            "title": "Oat Biscuits",
            "status": "active",
            "images": [
                {"uuid": "img-1", "url": "https://cdn/1.jpg", "position": 0},
                {"uuid": "img-2", "url": "https://cdn/2.jpg", "position": 1},
            ],
            "variants": [{"uuid": "api-v1", "title": "200g", "sku": "OAT-200", "price": 3.5, "images": []}],
        }
    )


def teardown_module(module):
    app.dependency_overrides.clear()


def _open(product_id=None):
    body = {"product_id": product_id} if product_id else None
    res = client.post(BASE, json=body, headers=AUTH)
    assert res.status_code == 200
    return res.json()


def test_open_new_draft():
    body = _open()
    assert body["draft"]["identifier"] is None
    assert len(body["draft"]["variants"]) == 1
    assert body["is_submitting"] is False


def test_open_unknown_product_is_bad_gateway():
    res = client.post(BASE, json={"product_id": "missing"}, headers=AUTH)
    assert res.status_code == 502


def test_unknown_session():
    res = client.get(f"{BASE}/nope")
    assert res.status_code == 404


def test_create_product_through_api():
    sid = _open()["session_id"]

    res = client.patch(f"{BASE}/{sid}/fields", json={"field": "title", "value": "Rye Crackers"})
    assert res.status_code == 200
    res = client.patch(f"{BASE}/{sid}/fields", json={"field": "tags_input", "value": "snacks, rye"})
    assert res.json()["draft"]["tags"] == ["snacks", "rye"]
    client.patch(f"{BASE}/{sid}/variants/0/fields", json={"field": "title", "value": "150g"})
    client.patch(f"{BASE}/{sid}/variants/0/fields", json={"field": "sku", "value": "RYE-150"})

    res = client.post(
        f"{BASE}/{sid}/images/uploads",
        files={"image": ("front.jpg", b"jpeg-bytes", "image/jpeg")},
        data={"alt_text": "Front"},
    )
    assert res.status_code == 200
    assert res.json()["draft"]["pending_uploads"][0]["filename"] == "front.jpg"
    res = client.post(
        f"{BASE}/{sid}/images/uploads",
        files={"image": ("pack.jpg", b"jpeg-bytes", "image/jpeg")},
        data={"variant_index": "0"},
    )
    assert res.json()["draft"]["variants"][0]["pending_uploads"][0]["filename"] == "pack.jpg"

    res = client.post(f"{BASE}/{sid}/commit", headers=AUTH)
    assert res.status_code == 200
    body = res.json()
    assert body["result"]["branch"] == "create"
    assert body["result"]["outcome"] == "success"
    assert body["result"]["uploads"]["success_count"] == 2
    assert body["draft"]["identifier"] == body["result"]["product_id"]
    assert body["draft"]["pending_uploads"] == []
    assert len(body["draft"]["images"]) == 1
    assert len(body["draft"]["variants"][0]["images"]) == 1


def test_commit_without_token_is_unauthorized():
    sid = _open()["session_id"]
    res = client.post(f"{BASE}/{sid}/commit")
    assert res.status_code == 401


def test_invalid_variant_is_bad_request():
    sid = _open()["session_id"]
    client.patch(f"{BASE}/{sid}/fields", json={"field": "title", "value": "No SKU"})
    res = client.post(f"{BASE}/{sid}/commit", headers=AUTH)
    assert res.status_code == 400


def test_unknown_field_is_rejected():
    sid = _open()["session_id"]
    res = client.patch(f"{BASE}/{sid}/fields", json={"field": "identifier", "value": "x"})
    assert res.status_code == 422


def test_delete_and_undo_on_existing_product():
    sid = _open("api-p1")["session_id"]

    res = client.post(f"{BASE}/{sid}/images/0/delete")
    body = res.json()
    assert [i["identifier"] for i in body["draft"]["images"]] == ["img-2"]
    assert body["draft"]["pending_deletions"][0]["remote_identifier"] == "img-1"
    assert body["notices"][0]["level"] == "info"

    res = client.post(f"{BASE}/{sid}/images/deletions/0/undo")
    body = res.json()
    assert body["draft"]["pending_deletions"] == []
    assert body["notices"] == [{"level": "success", "message": "Image deletion cancelled"}]


def test_bad_index_is_bad_request():
    sid = _open("api-p1")["session_id"]
    res = client.post(f"{BASE}/{sid}/images/7/delete")
    assert res.status_code == 400
    res = client.delete(f"{BASE}/{sid}/images/uploads/0", params={"variant_index": 3})
    assert res.status_code == 400


def test_featured_is_sent_immediately():
    sid = _open("api-p1")["session_id"]
    catalog.calls.clear()

    res = client.post(f"{BASE}/{sid}/images/1/featured", headers=AUTH)

    assert res.status_code == 200
    assert [i["identifier"] for i in res.json()["draft"]["images"]] == ["img-2", "img-1"]
    assert catalog.calls == [("reorder_product_images", "api-p1")]


def test_remove_last_variant_is_rejected():
    sid = _open()["session_id"]
    res = client.delete(f"{BASE}/{sid}/variants/0")
    assert res.status_code == 400
    client.post(f"{BASE}/{sid}/variants")
    res = client.delete(f"{BASE}/{sid}/variants/0")
    assert res.status_code == 200
    assert len(res.json()["draft"]["variants"]) == 1


def test_close_session():
    sid = _open()["session_id"]
    assert client.delete(f"{BASE}/{sid}").json() == {"ok": True}
    assert client.get(f"{BASE}/{sid}").status_code == 404
