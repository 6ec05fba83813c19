import io

import pytest
from bson import ObjectId

from services import slugify, unique_slug
from tests.conftest import bearer


@pytest.fixture
def category(api, admin):
    resp = api.post("/api/admin/categories", data={"name": "Living Room", "description": "Sofas"},
                    headers=bearer(admin["token"]))
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def test_create_category(category):
    assert category["slug"] == "living-room"
    assert category["description"] == "Sofas"
    assert category["image"] == "no-image.jpg"


def test_list_and_get_categories(api, admin, category):
    api.post("/api/admin/categories", data={"name": "Bedroom"}, headers=bearer(admin["token"]))

    listed = api.get("/api/categories").json()
    assert [c["name"] for c in listed["data"]] == ["Bedroom", "Living Room"]
    assert listed["count"] == 2
    assert api.get(f"/api/categories/{category['id']}").json()["data"]["slug"] == "living-room"
    assert api.get(f"/api/categories/{ObjectId()}").status_code == 404


def test_duplicate_name_rejected_case_insensitively(api, admin, category):
    resp = api.post("/api/admin/categories", data={"name": "living room"}, headers=bearer(admin["token"]))
    assert resp.status_code == 400
    assert resp.json()["message"] == "Category with this name already exists"


def test_create_requires_admin(api, customer):
    resp = api.post("/api/admin/categories", data={"name": "Outdoor"}, headers=bearer(customer["token"]))
    assert resp.status_code == 403


def test_create_with_image_upload(api, admin, tmp_path):
    files = {"image": ("outdoor.jpg", io.BytesIO(b"jpeg"), "image/jpeg")}
    resp = api.post("/api/admin/categories", data={"name": "Outdoor"}, files=files, headers=bearer(admin["token"]))

    image = resp.json()["data"]["image"]
    assert image.startswith("/uploads/")
    assert (tmp_path / image.rsplit("/", 1)[1]).exists()


def test_update_renames_slug(api, admin, category):
    resp = api.put(f"/api/admin/categories/{category['id']}", data={"name": "Lounge & Living"},
                   headers=bearer(admin["token"]))
    data = resp.json()["data"]
    assert data["name"] == "Lounge & Living"
    assert data["slug"] == "lounge-living"


def test_update_to_taken_name(api, admin, category):
    api.post("/api/admin/categories", data={"name": "Bedroom"}, headers=bearer(admin["token"]))
    resp = api.put(f"/api/admin/categories/{category['id']}", data={"name": "BEDROOM"},
                   headers=bearer(admin["token"]))
    assert resp.status_code == 400


def test_delete_refused_while_products_reference_it(api, admin, db, category):
    db["product"].insert_one({"name": "Luxury Sofa", "price": 12999, "category": category["id"]})

    resp = api.delete(f"/api/admin/categories/{category['id']}", headers=bearer(admin["token"]))

    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert "has products" in resp.json()["message"]
    assert db["category"].count_documents({}) == 1


def test_delete_empty_category(api, admin, db, category):
    resp = api.delete(f"/api/admin/categories/{category['id']}", headers=bearer(admin["token"]))
    assert resp.status_code == 200
    assert db["category"].count_documents({}) == 0
    assert api.delete(f"/api/admin/categories/{category['id']}", headers=bearer(admin["token"])).status_code == 404


def test_slugs_stay_unique(db):
    db["category"].insert_one({"name": "Chairs!", "slug": "chairs"})
    assert unique_slug(db, "Chairs") == "chairs-1"


@pytest.mark.parametrize("name,slug", [
    ("Living Room", "living-room"),
    ("  Kids' (Bunk) Beds ", "kids-bunk-beds"),
    ("Tables & Desks", "tables-desks"),
])
def test_slugify(name, slug):
    assert slugify(name) == slug


def test_delete_guard_ignores_id_casing(api, admin, db, category):
    db["product"].insert_one({"name": "Luxury Sofa", "price": 12999, "category": category["id"]})

    resp = api.delete(f"/api/admin/categories/{category['id'].upper()}", headers=bearer(admin["token"]))

    assert resp.status_code == 400
    assert db["category"].count_documents({}) == 1


@pytest.mark.parametrize("name", ["   ", "x" * 51])
def test_update_rejects_blank_or_long_name(api, admin, db, category, name):
    resp = api.put(f"/api/admin/categories/{category['id']}", data={"name": name},
                   headers=bearer(admin["token"]))

    assert resp.status_code == 400
    assert db["category"].find_one({})["name"] == "Living Room"
