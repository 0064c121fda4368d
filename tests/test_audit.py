from conftest import API, auth_headers


async def test_audit_log_lists_view_changes(client):
    await client.post(f"{API}/saved-views", json={"entity_type": "contact", "name": "Mine"})
    r = await client.get(f"{API}/audit", params={"action": "created"})
    assert r.status_code == 200
    rows = r.json()
    assert len(rows) == 1
    assert rows[0]["resource_type"] == "saved_view"
    assert rows[0]["actor_type"] == "user"


async def test_audit_log_is_admin_only(client):
    r = await client.get(f"{API}/audit", headers=auth_headers(roles=["staff"]))
    assert r.status_code == 403


async def test_health(client):
    r = await client.get(f"{API}/health")
    assert r.json() == {"status": "ok"}
