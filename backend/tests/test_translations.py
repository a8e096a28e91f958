"""
翻译任务接口测试
"""

from app.models.package import Package
from app.services.translation_service import apply_package_translation, package_source_fields
from tests.conftest import create_package


def _package(**overrides) -> Package:
    values = {
        "title": "Tour", "description": "Desc", "destination": "Riyadh",
        "inclusions": ["Hotel", " "], "exclusions": [], "highlights": ["Souq"],
        "inclusions_ar": [], "highlights_ar": [],
        "itinerary": [{"day": 1, "title": "Arrival", "description": ""}],
    }
    values.update(overrides)
    return Package(**values)


def test_package_source_fields_skip_blank_values():
    assert package_source_fields(_package()) == [
        ("title", "Tour"),
        ("description", "Desc"),
        ("destination", "Riyadh"),
        ("inclusions.0", "Hotel"),
        ("highlights.0", "Souq"),
        ("itinerary.0.title", "Arrival"),
    ]


def test_apply_package_translation_paths():
    package = _package()
    assert apply_package_translation(package, "title", "جولة")
    assert package.title_ar == "جولة"

    assert apply_package_translation(package, "highlights.2", "سوق")
    assert package.highlights_ar == ["", "", "سوق"]

    assert apply_package_translation(package, "itinerary.0.title", "الوصول")
    assert package.itinerary[0]["title_ar"] == "الوصول"

    assert not apply_package_translation(package, "itinerary.5.title", "x")
    assert not apply_package_translation(package, "price", "x")


async def test_translations_require_translator_role(client, customer_headers):
    response = await client.get("/api/v1/translations/", headers=customer_headers)
    assert response.status_code == 403


async def test_translation_lifecycle_writes_back(client, db, admin, expert, expert_headers):
    package = await create_package(db)

    response = await client.post("/api/v1/translations/", headers=expert_headers, json={
        "contentType": "package",
        "contentId": package.id,
        "fieldName": "destination",
        "sourceText": package.destination,
    })
    assert response.status_code == 201
    task = response.json()["data"]["translation"]
    assert task["status"] == "pending"
    assert task["progressPercentage"] == 0

    response = await client.post("/api/v1/translations/", headers=expert_headers, json={
        "contentType": "package", "contentId": package.id, "fieldName": "destination", "sourceText": "x",
    })
    assert response.status_code == 400
    assert response.json()["message"] == "Translation task already exists for this field"

    response = await client.put(f"/api/v1/translations/{task['id']}/assign", headers=expert_headers,
                                json={"assignedTo": admin.id})
    assigned = response.json()["data"]["translation"]
    assert (assigned["assignedToId"], assigned["status"]) == (admin.id, "in_progress")

    response = await client.put(f"/api/v1/translations/{task['id']}", headers=expert_headers, json={
        "translatedText": "الرياض", "status": "completed", "reason": "First pass",
    })
    updated = response.json()["data"]["translation"]
    assert updated["progressPercentage"] == 75
    assert updated["completedAt"] is not None
    assert updated["revisionHistory"][0]["reason"] == "First pass"
    assert updated["revisionHistory"][0]["changedBy"] == expert.id

    await db.refresh(package)
    assert package.destination_ar == "الرياض"

    response = await client.post(f"/api/v1/translations/{task['id']}/comments", headers=expert_headers,
                                 json={"text": "Looks good"})
    assert response.status_code == 201
    assert response.json()["data"]["translation"]["comments"][0]["text"] == "Looks good"


async def test_bulk_create_for_package(client, db, expert_headers):
    package = await create_package(db, highlights=["Masmak Fort"], itinerary=[{"day": 1, "title": "Old Riyadh"}])

    response = await client.post(f"/api/v1/translations/packages/{package.id}/bulk-create",
                                 headers=expert_headers, json={"priority": "high"})
    assert response.status_code == 201
    data = response.json()["data"]
    fields = {t["fieldName"] for t in data["created"]}
    assert fields == {"title", "description", "destination", "highlights.0", "itinerary.0.title"}
    assert {t["priority"] for t in data["created"]} == {"high"}
    assert data["skipped"] == 0

    response = await client.post(f"/api/v1/translations/packages/{package.id}/bulk-create", headers=expert_headers)
    assert response.json()["data"] == {"created": [], "skipped": 5}

    response = await client.get("/api/v1/translations/packages/status", headers=expert_headers)
    status = response.json()["data"]["packages"][0]
    assert status["pendingTasks"] == 5
    assert status["needsTranslation"] is True

    response = await client.get("/api/v1/translations/", headers=expert_headers, params={"priority": "high"})
    assert response.json()["data"]["pagination"]["totalTranslations"] == 5

    response = await client.get("/api/v1/translations/stats", headers=expert_headers)
    stats = response.json()["data"]
    assert stats["byStatus"] == [{"status": "pending", "count": 5, "avgQuality": None}]
    assert stats["byLanguage"] == [{"language": "ar", "total": 5, "completed": 0}]
    assert stats["overdueCount"] == 0


async def test_translation_not_found(client, expert_headers):
    response = await client.get("/api/v1/translations/999", headers=expert_headers)
    assert response.status_code == 404
    assert response.json()["message"] == "Translation task not found"
