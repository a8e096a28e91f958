"""
活动分类接口测试
"""

URL = "/api/v1/activity-categories/"


async def _create(client, headers, **payload):
    response = await client.post(URL, json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]["category"]


async def test_category_tree(client, admin_headers):
    tours = await _create(client, admin_headers, name="Tours")
    cultural = await _create(client, admin_headers, name="Cultural Tours", parentId=tours["id"])
    museums = await _create(client, admin_headers, name="Museums", parentId=cultural["id"])
    await _create(client, admin_headers, name="Diving")

    assert (cultural["level"], cultural["path"]) == (1, "tours/cultural-tours")
    assert (museums["level"], museums["path"]) == (2, "tours/cultural-tours/museums")

    response = await client.get(URL)
    tree = response.json()["data"]["categories"]
    assert [node["name"] for node in tree] == ["Diving", "Tours"]
    assert tree[1]["children"][0]["children"][0]["name"] == "Museums"

    response = await client.get(URL, params={"flat": True})
    assert len(response.json()["data"]["categories"]) == 4

    response = await client.get(f"{URL}{tours['id']}")
    assert [c["name"] for c in response.json()["data"]["category"]["subcategories"]] == ["Cultural Tours"]


async def test_create_validation(client, admin_headers, expert_headers):
    response = await client.post(URL, json={"name": "Tours"}, headers=expert_headers)
    assert response.status_code == 403
    assert response.json()["message"] == "Access denied. Admin role required."

    response = await client.post(URL, json={"name": "  "}, headers=admin_headers)
    assert response.json()["message"] == "Category name is required"

    response = await client.post(URL, json={"name": "Orphan", "parentId": 999}, headers=admin_headers)
    assert response.json()["message"] == "Parent category not found"

    await _create(client, admin_headers, name="Tours")
    response = await client.post(URL, json={"name": "tours"}, headers=admin_headers)
    assert response.json()["message"] == "Category with this name already exists"


async def test_move_and_rename(client, admin_headers):
    tours = await _create(client, admin_headers, name="Tours")
    cultural = await _create(client, admin_headers, name="Cultural", parentId=tours["id"])
    museums = await _create(client, admin_headers, name="Museums", parentId=cultural["id"])

    response = await client.put(f"{URL}{tours['id']}", json={"parentId": tours["id"]}, headers=admin_headers)
    assert response.json()["message"] == "Category cannot be its own parent"

    response = await client.put(f"{URL}{tours['id']}", json={"parentId": museums["id"]}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Cannot create circular reference"

    response = await client.put(f"{URL}{tours['id']}", json={"name": "Guided Tours"}, headers=admin_headers)
    assert response.json()["data"]["category"]["slug"] == "guided-tours"

    response = await client.get(f"{URL}{museums['id']}")
    assert response.json()["data"]["category"]["path"] == "guided-tours/cultural/museums"

    response = await client.put(f"{URL}{cultural['id']}", json={"parentId": None}, headers=admin_headers)
    moved = response.json()["data"]["category"]
    assert (moved["level"], moved["path"]) == (0, "cultural")


async def test_status_reorder_stats_and_delete(client, admin_headers):
    tours = await _create(client, admin_headers, name="Tours")
    child = await _create(client, admin_headers, name="Walking", parentId=tours["id"])
    diving = await _create(client, admin_headers, name="Diving")

    response = await client.patch(f"{URL}{diving['id']}/status", json={"isActive": "no"}, headers=admin_headers)
    assert response.json()["message"] == "isActive must be a boolean value"

    response = await client.patch(f"{URL}{diving['id']}/status", json={"isActive": False}, headers=admin_headers)
    assert response.json()["message"] == "Category deactivated successfully"

    response = await client.get(f"{URL}stats", headers=admin_headers)
    stats = response.json()["data"]
    assert stats["overview"] == {
        "totalCategories": 3,
        "activeCategories": 2,
        "inactiveCategories": 1,
        "topLevelCategories": 2,
        "subcategories": 1,
    }
    assert stats["byLevel"] == [{"level": 0, "count": 2}, {"level": 1, "count": 1}]

    response = await client.put(f"{URL}reorder/bulk", json={"categories": "nope"}, headers=admin_headers)
    assert response.json()["message"] == "Categories must be an array"

    response = await client.put(f"{URL}reorder/bulk", headers=admin_headers,
                                json={"categories": [{"id": diving["id"], "order": 5}, {"id": tours["id"], "order": 1}]})
    assert response.status_code == 200
    response = await client.get(URL, params={"flat": True, "activeOnly": False})
    top_level = [c["name"] for c in response.json()["data"]["categories"] if c["level"] == 0]
    assert top_level == ["Tours", "Diving"]

    response = await client.delete(f"{URL}{tours['id']}", headers=admin_headers)
    assert response.json()["message"] == "Cannot delete category with subcategories"

    response = await client.delete(f"{URL}{child['id']}", headers=admin_headers)
    assert response.status_code == 200
    response = await client.get(f"{URL}{child['id']}")
    assert response.status_code == 404
