"""Tests for employee and department CRUD endpoints."""

import pytest
from httpx import AsyncClient


async def _create(client: AsyncClient, unique_id: str, first: str = "Ana", last: str = "Reyes", **extra):
    return await client.post(
        "/api/employees",
        json={"unique_id": unique_id, "firstname": first, "lastname": last, **extra},
    )


@pytest.mark.asyncio
async def test_create_employee(async_client: AsyncClient):
    """POST /employees should create a new employee."""
    resp = await _create(async_client, "BOB-001", "Bob", "Jones", gender="male", age=31)
    assert resp.status_code == 201
    data = resp.json()
    assert data["display_name"] == "Bob Jones"
    assert data["unique_id"] == "BOB-001"
    assert data["is_active"] is True
    assert data["id"] is not None


@pytest.mark.asyncio
async def test_create_employee_keeps_explicit_display_name(async_client: AsyncClient):
    resp = await _create(async_client, "DN-001", display_name="Bobby")
    assert resp.json()["display_name"] == "Bobby"


@pytest.mark.asyncio
async def test_create_duplicate_unique_id_rejected(async_client: AsyncClient):
    """Creating two employees with the same unique id should fail."""
    await _create(async_client, "DUP-001")
    resp = await _create(async_client, "DUP-001")
    assert resp.status_code == 400
    assert "already registered" in resp.json()["detail"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"unique_id": "", "firstname": "A", "lastname": "B"},
        {"unique_id": "has space", "firstname": "A", "lastname": "B"},
        {"unique_id": "OK-1", "firstname": "  ", "lastname": "B"},
        {"unique_id": "OK-2", "firstname": "A", "lastname": "B", "age": 0},
    ],
)
async def test_create_employee_validation(async_client: AsyncClient, payload):
    resp = await async_client.post("/api/employees", json=payload)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_create_employee_unknown_department(async_client: AsyncClient):
    resp = await _create(async_client, "DEP-404", department_id=42)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_list_employees_search_and_pagination(async_client: AsyncClient):
    for i in range(5):
        await _create(async_client, f"PAGE-{i:03d}", f"P{i}", "Page")
    await _create(async_client, "OTHER-1", "Zed", "Other")

    resp = await async_client.get("/api/employees?skip=2&limit=2")
    assert resp.status_code == 200
    assert len(resp.json()) == 2

    found = await async_client.get("/api/employees", params={"search": "zed"})
    assert [e["unique_id"] for e in found.json()] == ["OTHER-1"]

    # LIKE metacharacters are matched literally
    none = await async_client.get("/api/employees", params={"search": "%"})
    assert none.json() == []


@pytest.mark.asyncio
async def test_get_employee_by_id_and_unique_id(async_client: AsyncClient):
    eid = (await _create(async_client, "SOLO-001", "Solo", "One")).json()["id"]
    resp = await async_client.get(f"/api/employees/{eid}")
    assert resp.status_code == 200
    assert resp.json()["display_name"] == "Solo One"

    by_unique = await async_client.get("/api/employees/unique/SOLO-001")
    assert by_unique.json()["id"] == eid


@pytest.mark.asyncio
async def test_get_employee_not_found(async_client: AsyncClient):
    """Requesting a non-existent employee should return 404."""
    assert (await async_client.get("/api/employees/9999")).status_code == 404
    assert (await async_client.get("/api/employees/unique/NOPE")).status_code == 404


@pytest.mark.asyncio
async def test_fingerprint_templates_cover_enrolled_active_employees(async_client: AsyncClient):
    """GET /employees/templates lists only active employees with a template."""
    enrolled = (await _create(async_client, "TPL-001", biometric_data="AAAA")).json()
    await _create(async_client, "TPL-002")
    gone = (await _create(async_client, "TPL-003", biometric_data="CCCC")).json()
    await async_client.delete(f"/api/employees/{gone['id']}")

    resp = await async_client.get("/api/employees/templates")
    assert resp.status_code == 200
    assert resp.json() == [{"employee_id": enrolled["id"], "template": "AAAA"}]


@pytest.mark.asyncio
async def test_update_employee(async_client: AsyncClient):
    """PUT /employees/{id} should update employee details."""
    eid = (await _create(async_client, "UPD-001")).json()["id"]
    resp = await async_client.put(
        f"/api/employees/{eid}", json={"display_name": "New Name", "age": 40}
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["display_name"] == "New Name"
    assert data["age"] == 40


@pytest.mark.asyncio
async def test_update_employee_rejects_blank_name(async_client: AsyncClient):
    eid = (await _create(async_client, "UPD-002")).json()["id"]
    resp = await async_client.put(f"/api/employees/{eid}", json={"firstname": " "})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_soft_delete_employee(async_client: AsyncClient):
    """DELETE deactivates; the employee disappears from lists but still resolves by unique id."""
    eid = (await _create(async_client, "DEL-001")).json()["id"]
    resp = await async_client.delete(f"/api/employees/{eid}")
    assert resp.status_code == 200
    assert resp.json()["success"] is True

    assert (await async_client.get(f"/api/employees/{eid}")).status_code == 404
    assert (await async_client.get("/api/employees")).json() == []
    by_unique = await async_client.get("/api/employees/unique/DEL-001")
    assert by_unique.json()["is_active"] is False


# ── Departments ─────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_department_crud(async_client: AsyncClient):
    created = await async_client.post(
        "/api/departments", json={"name": "Engineering", "department_head": "Lea Cruz"}
    )
    assert created.status_code == 201
    dep_id = created.json()["id"]

    updated = await async_client.put(f"/api/departments/{dep_id}", json={"name": "R&D"})
    assert updated.json()["name"] == "R&D"
    assert updated.json()["department_head"] == "Lea Cruz"

    listed = await async_client.get("/api/departments")
    assert [d["name"] for d in listed.json()] == ["R&D"]

    deleted = await async_client.delete(f"/api/departments/{dep_id}")
    assert deleted.status_code == 200
    assert (await async_client.get(f"/api/departments/{dep_id}")).status_code == 404


@pytest.mark.asyncio
async def test_department_with_employees_cannot_be_deleted(async_client: AsyncClient):
    dep = await async_client.post(
        "/api/departments", json={"name": "Ops", "department_head": "Joy Tan"}
    )
    dep_id = dep.json()["id"]
    await _create(async_client, "OPS-001", department_id=dep_id)

    filtered = await async_client.get("/api/employees", params={"department_id": dep_id})
    assert len(filtered.json()) == 1

    resp = await async_client.delete(f"/api/departments/{dep_id}")
    assert resp.status_code == 400
