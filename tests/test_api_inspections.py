import os

from app.core.exceptions import PersistenceError
from app.services import inspection_service


def test_analyze_creates_inspection_with_hazards(client, register, upload, fake_analyzer):
    headers = register()
    resp = upload(headers, latitude="-1.2921", longitude="36.8219", notes="")

    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["inspection"]["status"] == "completed"
    assert body["inspection"]["overall_risk_level"] == "Extreme"
    assert body["inspection"]["latitude"] == -1.2921
    assert body["inspection"]["notes"] is None
    assert [h["risk_score"] for h in body["hazards"]] == [20, 6]
    assert body["hazards"][0]["engineering_control"] == "Install guard rails"
    assert body["hazards"][1]["category"] == "Electrical"
    assert body["ai_result"]["overall_risk_level"] == "Extreme"
    assert fake_analyzer.calls[0][1] == "image/jpeg"


def test_analyze_requires_metadata_and_image(client, register):
    headers = register()
    resp = client.post(
        "/api/v1/inspections/analyze",
        data={"project_name": "Tower", "inspection_date": ""},
        files={"image": ("site.jpg", b"\xff\xd8\xff", "image/jpeg")},
        headers=headers,
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Project name and inspection date are required"

    resp = client.post(
        "/api/v1/inspections/analyze",
        data={"project_name": "Tower", "inspection_date": "2026-03-14"},
        headers=headers,
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Image file is required"

    assert client.get("/api/v1/inspections", headers=headers).json()["total"] == 0


def test_analyze_rejects_non_images(client, register, upload):
    headers = register()
    resp = upload(headers, filename="report.pdf")
    assert resp.status_code == 400
    assert "Only image files are allowed" in resp.json()["error"]


def test_failed_analysis_reports_inspection_id(client, register, upload, fake_analyzer):
    headers = register()
    fake_analyzer.error = RuntimeError("model exploded")

    resp = upload(headers)

    assert resp.status_code == 502
    body = resp.json()
    assert body["error"] == "AI analysis failed"
    detail = client.get(f"/api/v1/inspections/{body['inspection_id']}", headers=headers).json()
    assert detail["inspection"]["status"] == "failed"
    assert detail["hazards"] == []


def test_list_and_detail(client, register, upload):
    headers = register()
    upload(headers, project_name="Bridge")
    upload(headers, project_name="Warehouse")

    resp = client.get("/api/v1/inspections", params={"search": "ware"}, headers=headers)
    body = resp.json()
    assert body["total"] == 1
    assert body["inspections"][0]["project_name"] == "Warehouse"
    assert body["inspections"][0]["hazard_count"] == 2
    assert body["inspections"][0]["extreme_count"] == 1

    resp = client.get("/api/v1/inspections", params={"risk_level": "Extreme", "limit": 1}, headers=headers)
    assert resp.json()["total"] == 2
    assert len(resp.json()["inspections"]) == 1

    assert client.get("/api/v1/inspections", params={"risk_level": "Severe"}, headers=headers).status_code == 422

    inspection_id = body["inspections"][0]["id"]
    detail = client.get(f"/api/v1/inspections/{inspection_id}", headers=headers).json()
    assert detail["inspection"]["id"] == inspection_id
    assert [h["risk_score"] for h in detail["hazards"]] == [20, 6]


def test_paging_values_are_clamped(client, register, upload):
    headers = register()
    upload(headers, project_name="Bridge")
    upload(headers, project_name="Warehouse")

    resp = client.get("/api/v1/inspections", params={"page": 0, "limit": 0}, headers=headers)
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert (body["page"], body["limit"], body["total"]) == (1, 1, 2)
    assert len(body["inspections"]) == 1

    resp = client.get("/api/v1/inspections", params={"page": -3, "limit": 1000}, headers=headers)
    assert resp.status_code == 200
    assert (resp.json()["page"], resp.json()["limit"]) == (1, 100)


def test_manual_add_and_override(client, register, upload):
    headers = register()
    inspection_id = upload(headers).json()["inspection"]["id"]

    resp = client.post(
        f"/api/v1/inspections/{inspection_id}/hazards",
        json={"description": "Blocked fire exit", "category": "Fire", "severity": 4, "likelihood": 4},
        headers=headers,
    )
    assert resp.status_code == 201
    hazard = resp.json()
    assert (hazard["risk_score"], hazard["risk_level"], hazard["confidence"]) == (16, "Extreme", 1.0)

    resp = client.put(
        f"/api/v1/inspections/hazards/{hazard['id']}",
        json={"likelihood": 1, "immediate_action": "Clear the exit"},
        headers=headers,
    )
    assert resp.status_code == 200
    assert (resp.json()["risk_score"], resp.json()["risk_level"]) == (4, "Low")
    assert resp.json()["immediate_action"] == "Clear the exit"

    resp = client.post(
        f"/api/v1/inspections/{inspection_id}/hazards",
        json={"description": "Noise", "category": "Acoustic", "severity": 2, "likelihood": 2},
        headers=headers,
    )
    assert resp.status_code == 422


def test_other_users_get_404(client, register, upload):
    owner = register("alice")
    intruder = register("mallory")
    created = upload(owner).json()
    inspection_id = created["inspection"]["id"]
    hazard_id = created["hazards"][0]["id"]

    assert client.get(f"/api/v1/inspections/{inspection_id}", headers=intruder).status_code == 404
    assert client.delete(f"/api/v1/inspections/{inspection_id}", headers=intruder).status_code == 404
    resp = client.put(f"/api/v1/inspections/hazards/{hazard_id}", json={"severity": 1}, headers=intruder)
    assert resp.status_code == 404
    assert client.get(f"/api/v1/reports/{inspection_id}", headers=intruder).status_code == 404
    assert client.get("/api/v1/inspections", headers=intruder).json()["total"] == 0
    assert client.get("/api/v1/inspections/424242", headers=owner).json() == {"error": "Inspection not found"}


def test_delete_removes_photo_and_record(client, register, upload, settings):
    headers = register()
    upload(headers)
    stored = os.listdir(settings.UPLOAD_DIR)
    assert len(stored) == 1
    inspection_id = client.get("/api/v1/inspections", headers=headers).json()["inspections"][0]["id"]

    resp = client.delete(f"/api/v1/inspections/{inspection_id}", headers=headers)

    assert resp.json() == {"message": "Inspection deleted successfully"}
    assert os.listdir(settings.UPLOAD_DIR) == []
    assert client.get(f"/api/v1/inspections/{inspection_id}", headers=headers).status_code == 404


def test_photo_is_removed_when_inspection_insert_fails(client, register, upload, settings, monkeypatch):
    async def failing_create(*args, **kwargs):
        raise PersistenceError("Could not create inspection")

    headers = register()
    monkeypatch.setattr(inspection_service, "create_inspection", failing_create)

    resp = upload(headers)

    assert resp.status_code == 500
    assert resp.json() == {"error": "Storage failure"}
    assert os.listdir(settings.UPLOAD_DIR) == []
