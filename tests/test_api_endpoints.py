import httpx
import pytest

from retailer_desk.core.db import get_session
from retailer_desk.core.security import create_access_token, get_password_hash
from retailer_desk.main import app
from retailer_desk.models import UserRole


def _auth(rep) -> dict[str, str]:
    token = create_access_token({"sub": str(rep.id), "role": rep.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def client(session_factory, cache):
    async def override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.state.cache_store = cache
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.mark.anyio
async def test_healthz(client):
    response = await client.get("/api/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.anyio
async def test_login_issues_token(client, make_rep):
    await make_rep("rahim", password_hash=get_password_hash("secret123"))

    ok = await client.post("/api/auth/login", json={"username": "rahim", "password": "secret123"})
    bad = await client.post("/api/auth/login", json={"username": "rahim", "password": "wrong"})

    assert ok.status_code == 200
    body = ok.json()
    assert body["success"] is True
    assert body["data"]["user"]["role"] == "sales_rep"
    me = await client.get(
        "/api/users/me", headers={"Authorization": f"Bearer {body['data']['access_token']}"}
    )
    assert me.json()["data"]["username"] == "rahim"
    assert bad.status_code == 401
    assert bad.json() == {"success": False, "data": None, "message": "Invalid credentials"}


@pytest.mark.anyio
async def test_requests_without_token_are_rejected(client):
    response = await client.get("/api/retailers")
    assert response.status_code == 401
    assert response.json()["success"] is False


@pytest.mark.anyio
async def test_rep_lists_only_assigned_retailers_with_lenient_filters(client, make_rep, make_retailer):
    admin = await make_rep("boss", role=UserRole.ADMIN)
    rep = await make_rep("rahim")
    mine = await make_retailer("MINE", "Mine Store")
    await make_retailer("OTHER", "Other Store")

    assigned = await client.post(
        "/api/admin/assignments/bulk",
        json={"sales_rep_id": rep.id, "retailer_ids": [mine.id]},
        headers=_auth(admin),
    )
    assert assigned.json()["data"]["assigned"] == 1

    response = await client.get(
        "/api/retailers",
        params={"regionId": "abc", "page": "x", "limit": "-4"},
        headers=_auth(rep),
    )

    assert response.status_code == 200
    body = response.json()
    assert [item["uid"] for item in body["data"]] == ["MINE"]
    assert body["meta"] == {"total": 1, "page": 1, "limit": 10, "total_pages": 1}


@pytest.mark.anyio
async def test_rep_cannot_patch_unassigned_retailer(client, make_rep, make_retailer):
    rep = await make_rep("rahim")
    await make_retailer("FOREIGN")

    response = await client.patch("/api/retailers/FOREIGN", json={"points": 10}, headers=_auth(rep))
    missing = await client.patch("/api/retailers/NOPE", json={"points": 10}, headers=_auth(rep))

    assert response.status_code == 403
    assert missing.status_code == 404


@pytest.mark.anyio
async def test_rep_patches_assigned_retailer(client, make_rep, make_retailer):
    admin = await make_rep("boss", role=UserRole.ADMIN)
    rep = await make_rep("rahim")
    retailer = await make_retailer("OWNED")
    await client.post(
        "/api/admin/assignments/bulk",
        json={"sales_rep_id": rep.id, "retailer_ids": [retailer.id]},
        headers=_auth(admin),
    )

    response = await client.patch(
        "/api/retailers/OWNED", json={"points": 15, "notes": "Visited"}, headers=_auth(rep)
    )

    assert response.status_code == 200
    assert response.json()["data"]["points"] == 15
    fetched = await client.get("/api/retailers/OWNED", headers=_auth(rep))
    assert fetched.json()["data"]["notes"] == "Visited"


@pytest.mark.anyio
async def test_admin_routes_require_admin_role(client, make_rep):
    rep = await make_rep("rahim")
    response = await client.get("/api/admin/retailers", headers=_auth(rep))
    assert response.status_code == 403


@pytest.mark.anyio
async def test_admin_creates_retailer_and_rejects_duplicate(client, make_rep, hierarchy):
    admin = await make_rep("boss", role=UserRole.ADMIN)
    payload = {"uid": "NEW-1", "name": "New Shop", "phone": "0171", **hierarchy}

    created = await client.post("/api/admin/retailers", json=payload, headers=_auth(admin))
    duplicate = await client.post("/api/admin/retailers", json=payload, headers=_auth(admin))

    assert created.status_code == 201
    assert created.json()["data"]["region"]["name"] == "Dhaka"
    assert duplicate.status_code == 409
    assert duplicate.json()["message"] == "Retailer UID already exists"


@pytest.mark.anyio
async def test_invalid_payload_is_a_400(client, make_rep):
    admin = await make_rep("boss", role=UserRole.ADMIN)
    response = await client.post(
        "/api/admin/assignments/bulk",
        json={"sales_rep_id": 1, "retailer_ids": []},
        headers=_auth(admin),
    )
    assert response.status_code == 400
    assert response.json()["success"] is False


@pytest.mark.anyio
async def test_admin_imports_csv(client, make_rep, hierarchy):
    admin = await make_rep("boss", role=UserRole.ADMIN)
    ids = ",".join(
        str(hierarchy[k]) for k in ("region_id", "area_id", "distributor_id", "territory_id")
    )
    content = f"uid,name,phone,regionId,areaId,distributorId,territoryId\nC1,Csv Shop,0171,{ids}\n"

    response = await client.post(
        "/api/admin/retailers/import",
        files={"file": ("retailers.csv", content, "text/csv")},
        headers=_auth(admin),
    )
    rejected = await client.post(
        "/api/admin/retailers/import",
        files={"file": ("retailers.txt", "hello", "text/plain")},
        headers=_auth(admin),
    )

    assert response.status_code == 200
    assert response.json()["data"]["imported"] == 1
    assert rejected.status_code == 400


@pytest.mark.anyio
async def test_reference_data_reads_and_admin_writes(client, make_rep, make_retailer, hierarchy):
    admin = await make_rep("boss", role=UserRole.ADMIN)
    rep = await make_rep("rahim")
    await make_retailer("R1")

    regions = await client.get("/api/regions", headers=_auth(rep))
    forbidden = await client.post("/api/regions", json={"name": "Sylhet"}, headers=_auth(rep))
    created = await client.post("/api/regions", json={"name": "Sylhet"}, headers=_auth(admin))
    in_use = await client.delete(f"/api/regions/{hierarchy['region_id']}", headers=_auth(admin))
    areas = await client.get(f"/api/areas/region/{hierarchy['region_id']}", headers=_auth(rep))

    assert [r["name"] for r in regions.json()["data"]] == ["Dhaka"]
    assert forbidden.status_code == 403
    assert created.status_code == 201
    assert in_use.status_code == 409
    assert [a["name"] for a in areas.json()["data"]] == ["Gulshan"]
    refreshed = await client.get("/api/regions", headers=_auth(rep))
    assert [r["name"] for r in refreshed.json()["data"]] == ["Dhaka", "Sylhet"]


@pytest.mark.anyio
async def test_sales_rep_admin_crud(client, make_rep, make_retailer):
    admin = await make_rep("boss", role=UserRole.ADMIN)
    retailer = await make_retailer("R1")

    created = await client.post(
        "/api/admin/sales-reps",
        json={"username": "karim", "name": "Karim", "phone": "0181", "password": "secret123"},
        headers=_auth(admin),
    )
    rep_id = created.json()["data"]["id"]
    duplicate = await client.post(
        "/api/admin/sales-reps",
        json={"username": "karim", "name": "Karim", "phone": "0181", "password": "secret123"},
        headers=_auth(admin),
    )
    await client.post(
        "/api/admin/assignments/bulk",
        json={"sales_rep_id": rep_id, "retailer_ids": [retailer.id]},
        headers=_auth(admin),
    )
    count = await client.get(f"/api/admin/sales-reps/{rep_id}/retailers/count", headers=_auth(admin))
    listing = await client.get("/api/admin/sales-reps", headers=_auth(admin))

    assert created.status_code == 201
    assert "password" not in created.json()["data"]
    assert duplicate.status_code == 409
    assert count.json()["data"] == {"count": 1}
    assert listing.json()["meta"]["total"] == 2


@pytest.mark.anyio
async def test_admin_update_can_clear_notes_but_keeps_required_fields(client, make_rep, make_retailer):
    admin = await make_rep("boss", role=UserRole.ADMIN)
    retailer = await make_retailer("R-NOTES", "Noted Shop", notes="Call first", routes="Route 7")

    response = await client.put(
        f"/api/admin/retailers/{retailer.id}",
        json={"notes": None, "name": None, "points": 8},
        headers=_auth(admin),
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["notes"] is None
    assert data["routes"] == "Route 7"
    assert data["name"] == "Noted Shop"
    assert data["points"] == 8
