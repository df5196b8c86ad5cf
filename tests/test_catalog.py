from datetime import timedelta

import pytest

import catalog
from cart import add_item
from catalog import MAX_SKIP, ProductQuery, first_image, is_new, list_products, serialize_product, update_product
from conftest import BASE_TIME
from orders import place_order


def names(resp):
    return [p["name"] for p in resp.json()["data"]]


def test_default_sort_is_newest_first(client, add_product):
    add_product(name="Old")
    add_product(name="Middle")
    add_product(name="New")
    resp = client.get("/api/products")
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert names(resp) == ["New", "Middle", "Old"]
    assert body["totalCount"] == 3
    assert body["totalPages"] == 1
    assert body["currentPage"] == 1


@pytest.mark.parametrize("sort,expected", [
    ("oldest", ["A", "B", "C"]),
    ("price-asc", ["B", "C", "A"]),
    ("price-desc", ["A", "C", "B"]),
    ("rating", ["C", "A", "B"]),
    ("bogus", ["C", "B", "A"]),
])
def test_sort_options(client, add_product, sort, expected):
    add_product(name="A", price=300, ratings={"average": 4.0, "count": 1})
    add_product(name="B", price=100, ratings={"average": 3.0, "count": 1})
    add_product(name="C", price=200, ratings={"average": 5.0, "count": 1})
    assert names(client.get("/api/products", params={"sort": sort})) == expected


def test_ties_keep_insertion_order(client, add_product):
    same_time = BASE_TIME + timedelta(days=1)
    add_product(name="First", price=50, created_at=same_time)
    add_product(name="Second", price=50, created_at=same_time)
    add_product(name="Third", price=50, created_at=same_time)
    assert names(client.get("/api/products", params={"sort": "price-asc"})) == ["First", "Second", "Third"]
    assert names(client.get("/api/products")) == ["First", "Second", "Third"]


def test_pagination_slices_filtered_set(client, add_product):
    for i in range(7):
        add_product(name=f"Saree {i}", category="Sarees", price=100 + i)
    for i in range(3):
        add_product(name=f"Note {i}", category="Stationery")

    everything = names(client.get("/api/products", params={"category": "Sarees", "sort": "price-asc"}))
    assert len(everything) == 7

    resp = client.get("/api/products", params={"category": "Sarees", "sort": "price-asc", "page": 2, "limit": 3})
    body = resp.json()
    assert body["totalCount"] == 7
    assert body["totalPages"] == 3
    assert body["currentPage"] == 2
    assert body["count"] == 3
    assert names(resp) == everything[3:6]

    last = client.get("/api/products", params={"category": "Sarees", "sort": "price-asc", "page": 3, "limit": 3})
    assert names(last) == everything[6:]
    beyond = client.get("/api/products", params={"category": "Sarees", "page": 9, "limit": 3}).json()
    assert beyond["data"] == []
    assert beyond["totalCount"] == 7


def test_search_matches_name_or_description_case_insensitively(client, add_product):
    add_product(name="Banarasi Silk Saree", description="Zari work")
    add_product(name="Cotton Saree", description="Daily wear SILK blend")
    add_product(name="Notebook", description="Ruled pages")
    got = set(names(client.get("/api/products", params={"search": "silk"})))
    assert got == {"Banarasi Silk Saree", "Cotton Saree"}


def test_search_term_is_literal(client, add_product):
    add_product(name="Pen (blue)")
    add_product(name="Pen blue")
    assert names(client.get("/api/products", params={"search": "(blue)"})) == ["Pen (blue)"]


def test_search_term_keeps_its_spaces(client, add_product):
    add_product(name="Gold ring")
    add_product(name="Earring set")
    assert names(client.get("/api/products", params={"search": " ring"})) == ["Gold ring"]


def test_price_range_is_inclusive(client, add_product):
    for price in (100, 200, 300, 400):
        add_product(name=str(price), price=price)
    got = names(client.get("/api/products", params={"minPrice": "200", "maxPrice": "300", "sort": "price-asc"}))
    assert got == ["200", "300"]
    assert names(client.get("/api/products", params={"maxPrice": "100"})) == ["100"]


def test_malformed_numbers_are_ignored(client, add_product):
    for price in (100, 200):
        add_product(name=str(price), price=price)
    resp = client.get("/api/products", params={"minPrice": "cheap", "maxPrice": "", "page": "x", "limit": "-4"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["totalCount"] == 2
    assert body["currentPage"] == 1


def test_featured_and_new_arrival_flags(client, add_product):
    add_product(name="Plain")
    add_product(name="Featured", featured=True)
    add_product(name="Fresh", new_arrival=True)
    assert names(client.get("/api/products", params={"featured": "true"})) == ["Featured"]
    assert names(client.get("/api/products", params={"newArrival": "true"})) == ["Fresh"]
    assert len(names(client.get("/api/products", params={"featured": "yes"}))) == 3


def test_filters_combine(client, add_product):
    add_product(name="Gold Ring", category="Jewellery", price=500)
    add_product(name="Gold Saree", category="Sarees", price=500)
    add_product(name="Gold Chain", category="Jewellery", price=5000)
    got = names(client.get("/api/products", params={"category": "Jewellery", "search": "gold", "maxPrice": 1000}))
    assert got == ["Gold Ring"]


def test_repeated_listing_is_identical(client, add_product):
    for i in range(5):
        add_product(name=f"P{i}", price=10 * i)
    params = {"sort": "price-desc", "page": 1, "limit": 2, "search": "p"}
    assert client.get("/api/products", params=params).json() == client.get("/api/products", params=params).json()


def test_categories_and_new_arrivals(client, add_product):
    for i in range(22):
        add_product(category="Sarees" if i % 2 else "Stationery")
    cats = client.get("/api/products/categories/all").json()["data"]
    assert cats == ["Sarees", "Stationery"]

    arrivals = client.get("/api/products/new-arrivals").json()
    assert arrivals["count"] == 20
    assert arrivals["data"][0]["name"] == "Product 22"


def test_get_product(client, add_product):
    pid = add_product(name="Pearl Pendant", images=["a.jpg", "b.jpg"])
    body = client.get(f"/api/products/{pid}").json()
    assert body["data"]["id"] == pid
    assert body["data"]["image"] == "a.jpg"
    assert "_id" not in body["data"]


def test_get_product_errors(client):
    assert client.get("/api/products/not-an-id").status_code == 400
    missing = client.get("/api/products/65a000000000000000000000")
    assert missing.status_code == 404
    assert missing.json()["success"] is False


def test_derived_fields():
    now = BASE_TIME + timedelta(days=30)
    fresh = {"new_arrival": True, "new_arrival_date": now - timedelta(days=2), "images": []}
    stale = {"new_arrival": True, "new_arrival_date": now - timedelta(days=8), "images": ["x.jpg"]}
    assert is_new(fresh, now) is True
    assert is_new(stale, now) is False
    assert is_new({"new_arrival": False, "created_at": now}, now) is False
    assert is_new({"new_arrival": True, "created_at": (now - timedelta(days=1)).replace(tzinfo=None)}, now)
    assert first_image(fresh) is None
    assert first_image(stale) == "x.jpg"
    out = serialize_product(dict(stale, _id="abc"), now)
    assert out["is_new"] is False and out["image"] == "x.jpg"


def test_product_query_parsing():
    q = ProductQuery.from_params(min_price="10.5", max_price="nan", page="3", limit="1000", sort="rating")
    assert q.min_price == 10.5
    assert q.max_price is None
    assert q.page == 3
    assert q.limit == 100
    assert q.sort == "rating"
    assert q.skip == 200
    assert ProductQuery.from_params(page="0", limit="abc").page == 1
    assert ProductQuery.from_params(search="   ").to_filter() == {}


def test_page_past_skip_range_falls_back_to_first(client, add_product):
    q = ProductQuery.from_params(page=str(10 ** 19), limit="20")
    assert q.page == 1 and q.skip == 0
    edge = ProductQuery.from_params(page=str(MAX_SKIP // 20 + 1), limit="20")
    assert edge.skip <= MAX_SKIP

    add_product()
    resp = client.get("/api/products", params={"page": str(10 ** 19)})
    assert resp.status_code == 200
    assert resp.json()["currentPage"] == 1


def test_list_products_total_independent_of_page(db, add_product):
    for i in range(9):
        add_product(price=i)
    for page in (1, 2, 3, 4):
        items, total = list_products(db, ProductQuery(page=page, limit=4, min_price=2))
        assert total == 7
        assert len(items) == max(0, min(4, 7 - (page - 1) * 4))


# ----------------------- admin mutations -----------------------
NEW_PRODUCT = {
    "name": "  Silver Anklet ",
    "description": "Pair of silver anklets",
    "price": 799,
    "category": "Jewellery",
    "stock": 8,
    "new_arrival": True,
}


def test_create_product_requires_admin(client, user, admin_user):
    assert client.post("/api/products", json=NEW_PRODUCT).status_code == 401
    assert client.post("/api/products", json=NEW_PRODUCT, headers=user["headers"]).status_code == 403

    resp = client.post("/api/products", json=NEW_PRODUCT, headers=admin_user["headers"])
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["name"] == "Silver Anklet"
    assert data["new_arrival_date"] is not None
    assert data["is_new"] is True


def test_create_product_validation(client, admin_user):
    bad = dict(NEW_PRODUCT, price=-1, category="Toys")
    resp = client.post("/api/products", json=bad, headers=admin_user["headers"])
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "ValidationError"
    assert "price" in body["fields"] and "category" in body["fields"]


def test_update_product(client, admin_user, add_product):
    pid = add_product(name="Bracelet", price=1000, stock=4)
    resp = client.put(f"/api/products/{pid}", json={"price": 900, "stock": 6}, headers=admin_user["headers"])
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["price"] == 900 and data["stock"] == 6 and data["name"] == "Bracelet"

    bad = client.put(f"/api/products/{pid}", json={"stock": -2}, headers=admin_user["headers"])
    assert bad.status_code == 400
    assert client.get(f"/api/products/{pid}").json()["data"]["stock"] == 6

    assert client.put("/api/products/65a000000000000000000000", json={"price": 1},
                      headers=admin_user["headers"]).status_code == 404


def test_delete_and_bulk_delete(client, admin_user, add_product, db):
    ids = [add_product() for _ in range(4)]
    resp = client.delete(f"/api/products/{ids[0]}", headers=admin_user["headers"])
    assert resp.status_code == 200
    assert client.delete(f"/api/products/{ids[0]}", headers=admin_user["headers"]).status_code == 404

    resp = client.request("DELETE", "/api/products", json={"ids": ids[1:3]}, headers=admin_user["headers"])
    assert resp.status_code == 200
    assert resp.json()["count"] == 2
    assert db["product"].count_documents({}) == 1

    empty = client.request("DELETE", "/api/products", json={"ids": []}, headers=admin_user["headers"])
    assert empty.status_code == 400


def test_edit_keeps_stock_sold_meanwhile(db, user, add_product, address, monkeypatch):
    pid = add_product(name="Bangle", stock=5)
    add_item(db, user["id"], pid, 2)
    real_find = catalog.find_product

    def order_lands_after_read(db_, product_id):
        doc = real_find(db_, product_id)
        monkeypatch.setattr(catalog, "find_product", real_find)
        place_order(db, user["id"], address)
        return doc

    monkeypatch.setattr(catalog, "find_product", order_lands_after_read)
    data = update_product(db, pid, {"name": "Gold Bangle"})
    assert data["name"] == "Gold Bangle"
    assert data["stock"] == 3


def test_edit_marking_new_arrival_stamps_date(db, add_product):
    pid = add_product()
    data = update_product(db, pid, {"new_arrival": True})
    assert data["new_arrival"] is True
    assert data["new_arrival_date"] is not None
    assert data["is_new"] is True
