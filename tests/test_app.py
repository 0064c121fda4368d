import importlib

from conftest import API


def test_app_module_imports_with_all_routes():
    main = importlib.import_module("clinicrm.main")
    paths = {route.path for route in main.app.routes}
    for path in (
        "/health",
        "/gabinet/patients",
        "/gabinet/appointments",
        "/gabinet/appointments/calendar",
        "/gabinet/treatments",
        "/gabinet/documents",
        "/custom-fields/definitions",
        "/saved-views",
        "/portal/otp",
        "/portal/me/appointments",
        "/audit",
        "/events/outbox",
    ):
        assert f"{API}{path}" in paths, path


async def test_list_endpoints_answer(client):
    for path in ("/gabinet/patients", "/gabinet/appointments", "/audit"):
        r = await client.get(f"{API}{path}")
        assert r.status_code == 200, (path, r.text)
        assert r.json() == []
