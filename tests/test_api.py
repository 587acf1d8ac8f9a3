"""Tests for the FastAPI API."""

import inspect
from decimal import Decimal

from agency.api.routers import functions
from agency.data.models import ProjectModel

from conftest import ADMIN_ID, OTHER_USER_ID, USER_ID, user_headers

ANON = user_headers(user_id=None)
USER = user_headers()
OTHER = user_headers(user_id=OTHER_USER_ID, device_id="device-other")
ADMIN = user_headers(user_id=ADMIN_ID, device_id="device-admin")


def _order(api_client, pack_id="pack-base"):
    api_client.post(f"/cart/packs/{pack_id}", headers=USER)
    response = api_client.post("/orders", json={"payment_method": "card"}, headers=USER)
    assert response.status_code == 201
    return response.json()


class TestHealthCheck:
    def test_health(self, api_client):
        response = api_client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "database": "ok"}

    def test_request_id_header(self, api_client):
        response = api_client.get("/health", headers={"X-Request-ID": "req-1"})
        assert response.headers["X-Request-ID"] == "req-1"


class TestCatalog:
    def test_only_active_packs(self, api_client):
        names = [p["name"] for p in api_client.get("/catalog/packs").json()]
        assert names == ["Pack Base", "Pack Pro", "Pack Premium", "Pack Mini"]

    def test_missing_pack(self, api_client):
        assert api_client.get("/catalog/packs/nope").status_code == 404

    def test_services(self, api_client):
        assert len(api_client.get("/catalog/services").json()) == 2


class TestCartEndpoints:
    def test_anonymous_cart(self, api_client):
        response = api_client.post("/cart/packs/pack-mini", headers=ANON)
        assert response.status_code == 200
        data = response.json()
        assert data["id"].startswith("anonymous-")
        assert Decimal(data["total"]) == Decimal("150.00")

    def test_missing_identity(self, api_client):
        assert api_client.get("/cart").status_code == 400

    def test_service_without_pack(self, api_client):
        response = api_client.post("/cart/services/svc-seo", headers=USER)
        assert response.status_code == 400
        assert response.json()["detail"] == "Primero debes añadir un pack al carrito"

    def test_cascade_requires_confirmation(self, api_client):
        pack_item = api_client.post("/cart/packs/pack-base", headers=USER).json()["items"][0]["id"]
        api_client.post("/cart/services/svc-seo", headers=USER)

        preview = api_client.get(f"/cart/items/{pack_item}/removal-impact", headers=USER).json()
        assert preview["requires_confirmation"] is True

        response = api_client.delete(f"/cart/items/{pack_item}", headers=USER)
        assert response.status_code == 409
        assert len(response.json()["detail"]["cascaded_item_ids"]) == 1
        assert len(api_client.get("/cart", headers=USER).json()["items"]) == 2

        response = api_client.delete(f"/cart/items/{pack_item}?confirm=true", headers=USER)
        assert response.status_code == 200
        assert response.json()["items"] == []

    def test_quantity(self, api_client):
        item = api_client.post("/cart/packs/pack-base", headers=USER).json()["items"][0]["id"]
        response = api_client.patch(f"/cart/items/{item}", json={"quantity": 2}, headers=USER)
        assert Decimal(response.json()["total"]) == Decimal("1780.00")

    def test_clear(self, api_client):
        api_client.post("/cart/packs/pack-base", headers=USER)
        assert api_client.delete("/cart", headers=USER).json()["items"] == []

    def test_migrate(self, api_client):
        api_client.post("/cart/packs/pack-mini", headers=ANON)
        response = api_client.post("/cart/migrate", headers=USER)
        assert response.json() == {"migrated": True}
        items = api_client.get("/cart", headers=USER).json()["items"]
        assert [i["item_id"] for i in items] == ["pack-mini"]

    def test_migrate_requires_login(self, api_client):
        assert api_client.post("/cart/migrate", headers=ANON).status_code == 401


class TestOrderEndpoints:
    def test_create_and_fetch(self, api_client):
        order = _order(api_client, "pack-mini")
        assert order["status"] == "paid"
        assert Decimal(order["total_amount"]) == Decimal("150.00")
        assert len(order["items"]) == 1
        assert api_client.get("/cart", headers=USER).json()["items"] == []

        fetched = api_client.get(f"/orders/{order['id']}", headers=USER)
        assert fetched.status_code == 200
        assert [o["id"] for o in api_client.get("/orders", headers=USER).json()] == [order["id"]]

    def test_empty_cart(self, api_client):
        assert api_client.post("/orders", json={}, headers=USER).status_code == 400

    def test_other_user_forbidden(self, api_client):
        order = _order(api_client)
        assert api_client.get(f"/orders/{order['id']}", headers=OTHER).status_code == 403

    def test_status_update_admin_only(self, api_client):
        order = _order(api_client)
        url = f"/orders/{order['id']}/status"
        assert api_client.patch(url, json={"status": "completed"}, headers=USER).status_code == 403
        response = api_client.patch(url, json={"status": "completed"}, headers=ADMIN)
        assert response.json()["status"] == "completed"


class TestProjectEndpoints:
    def test_project_flow(self, api_client):
        order = _order(api_client)

        response = api_client.post("/projects", json={"order_id": order["id"]}, headers=USER)
        assert response.status_code == 201
        project = response.json()
        assert project["estimated_completion_days"] == 10
        assert project["status"] == "pending"

        listed = api_client.get("/projects", headers=USER).json()
        assert [p["id"] for p in listed] == [project["id"]]

        updates = api_client.get(f"/projects/{project['id']}/updates", headers=USER).json()
        assert api_client.get(f"/projects/{project['id']}/updates/unread-count", headers=USER).json()["unread"] == len(updates)

        form = api_client.get(f"/projects/{project['id']}/questionnaire", headers=USER).json()
        saved = api_client.put(
            f"/projects/questionnaire/{form['id']}",
            json={"responses": {"goal": "Vender"}, "mark_as_completed": True},
            headers=USER,
        )
        assert saved.json()["is_completed"] is True

    def test_duplicate_project(self, api_client):
        order = _order(api_client)
        api_client.post("/projects", json={"order_id": order["id"]}, headers=USER)
        assert api_client.post("/projects", json={"order_id": order["id"]}, headers=USER).status_code == 400

    def test_requires_login(self, api_client):
        assert api_client.get("/projects", headers=ANON).status_code == 401

    def test_template_route_not_shadowed(self, api_client):
        response = api_client.get("/projects/questionnaire/template", headers=USER)
        assert response.status_code == 200
        assert response.json() == []


class TestAdminEndpoints:
    def test_accept_project(self, api_client):
        order = _order(api_client, "pack-pro")
        project = api_client.post("/projects", json={"order_id": order["id"]}, headers=USER).json()
        url = f"/admin/projects/{project['id']}/status"

        assert api_client.patch(url, json={"status": "in_progress"}, headers=USER).status_code == 403
        response = api_client.patch(url, json={"status": "in_progress"}, headers=ADMIN)
        assert response.status_code == 200
        assert response.json()["status"] == "in_progress"

        titles = [u["title"] for u in api_client.get(f"/projects/{project['id']}/updates", headers=USER).json()]
        assert "¡Tu proyecto ha sido aceptado!" in titles

    def test_delete_project(self, api_client):
        order = _order(api_client)
        project = api_client.post("/projects", json={"order_id": order["id"]}, headers=USER).json()
        assert api_client.delete(f"/admin/projects/{project['id']}", headers=ADMIN).status_code == 204
        assert api_client.get(f"/projects/{project['id']}", headers=USER).status_code == 404


class TestFunctionsEndpoints:
    def _project(self, app_state):
        db = app_state.session_factory()
        project = ProjectModel(name="Proyecto", user_id=USER_ID, estimated_completion_days=10)
        db.add(project)
        db.commit()
        db.close()
        return project.id

    def test_create_milestones(self, api_client, app_state):
        project_id = self._project(app_state)
        response = api_client.post(
            "/functions/create-project-milestones",
            json={
                "projectId": project_id,
                "milestones": [
                    {"title": "Inicio", "due_date": "2024-03-01T09:00:00+00:00", "is_completed": True, "position": 1}
                ],
            },
            headers=USER,
        )
        assert response.status_code == 200
        assert response.json()["count"] == 1

    def test_missing_identity(self, api_client, app_state):
        project_id = self._project(app_state)
        response = api_client.post(
            "/functions/create-project-update",
            json={"projectId": project_id, "title": "t", "content": "c"},
        )
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_not_owner(self, api_client, app_state):
        project_id = self._project(app_state)
        response = api_client.post(
            "/functions/create-project-update",
            json={"projectId": project_id, "title": "t", "content": "c"},
            headers=OTHER,
        )
        assert response.status_code == 403

    def test_admin_may_write(self, api_client, app_state):
        project_id = self._project(app_state)
        response = api_client.post(
            "/functions/create-project-update",
            json={"projectId": project_id, "title": "t", "content": "c"},
            headers=ADMIN,
        )
        assert response.status_code == 200

    def test_invalid_body(self, api_client):
        response = api_client.post("/functions/create-project-update", json={"title": "t"}, headers=USER)
        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields"
        assert "details" in response.json()

    def test_non_object_body(self, api_client):
        response = api_client.post("/functions/create-project-milestones", json=[1, 2], headers=USER)
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request body"
        assert "details" in response.json()

    def test_handlers_run_in_threadpool(self):
        # blokujace zapytania do bazy nie moga isc na petli zdarzen
        assert not inspect.iscoroutinefunction(functions.create_project_milestones)
        assert not inspect.iscoroutinefunction(functions.create_project_update)


class TestProjectChanges:
    def test_long_poll_times_out(self, api_client):
        order = _order(api_client)
        project = api_client.post("/projects", json={"order_id": order["id"]}, headers=USER).json()
        url = f"/projects/{project['id']}/changes/project_updates?timeout=0"
        response = api_client.get(url, headers=USER)
        assert response.status_code == 200
        assert response.json() == {"changed": False}
        assert api_client.get(url, headers=OTHER).status_code == 403

    def test_unknown_table(self, api_client):
        order = _order(api_client)
        project = api_client.post("/projects", json={"order_id": order["id"]}, headers=USER).json()
        response = api_client.get(f"/projects/{project['id']}/changes/orders?timeout=0", headers=USER)
        assert response.status_code == 400

    def test_timeout_capped(self, api_client):
        assert api_client.get("/projects/x/changes/project_updates?timeout=120", headers=USER).status_code == 422


class TestAdminCatalogEndpoints:
    def test_requires_admin(self, api_client):
        assert api_client.get("/admin/catalog/packs", headers=USER).status_code == 403
        assert api_client.post("/admin/catalog/services", json={}, headers=ANON).status_code == 401

    def test_pack_lifecycle(self, api_client):
        response = api_client.post("/admin/catalog/packs", json={"name": "Pack Tienda", "price": "1990"}, headers=ADMIN)
        assert response.status_code == 201
        pack = response.json()
        assert pack["slug"].startswith("nuevo-pack-")
        assert pack["position"] == 5
        assert pack["features"] == []

        updated = api_client.patch(
            f"/admin/catalog/packs/{pack['id']}", json={"features": ["Tienda online"]}, headers=ADMIN
        ).json()
        assert updated["features"] == ["Tienda online"]
        assert updated["name"] == "Pack Tienda"

        hidden = api_client.patch(f"/admin/catalog/packs/{pack['id']}/active", json={"is_active": False}, headers=ADMIN)
        assert hidden.json()["is_active"] is False
        assert "Pack Tienda" not in [p["name"] for p in api_client.get("/catalog/packs").json()]
        assert "Pack Tienda" in [p["name"] for p in api_client.get("/admin/catalog/packs", headers=ADMIN).json()]

        assert api_client.delete(f"/admin/catalog/packs/{pack['id']}", headers=ADMIN).status_code == 204
        assert api_client.get(f"/catalog/packs/{pack['id']}").status_code == 404

    def test_pack_services(self, api_client):
        url = "/admin/catalog/packs/pack-pro/services"
        link = api_client.post(url, json={"service_id": "svc-seo"}, headers=ADMIN)
        assert link.status_code == 201
        assert link.json()["service_name"] == "SEO"

        duplicate = api_client.post(url, json={"service_id": "svc-seo"}, headers=ADMIN)
        assert duplicate.status_code == 400
        assert duplicate.json()["detail"] == "Este servicio ya está incluido en este pack"

        assert [s["service_id"] for s in api_client.get(url, headers=ADMIN).json()] == ["svc-seo"]
        assert api_client.delete(f"/admin/catalog/pack-services/{link.json()['id']}", headers=ADMIN).status_code == 204
        assert api_client.get(url, headers=ADMIN).json() == []

    def test_service_crud(self, api_client):
        created = api_client.post("/admin/catalog/services", json={}, headers=ADMIN).json()
        assert created["name"] == "Nuevo Servicio"
        assert created["category"] == "technical"

        url = f"/admin/catalog/services/{created['id']}"
        assert api_client.patch(url, json={"price": "75"}, headers=ADMIN).json()["price"] in ("75", "75.00")
        assert api_client.patch(url, json={"price": "-1"}, headers=ADMIN).status_code == 422
        assert api_client.delete(url, headers=ADMIN).status_code == 204
        assert api_client.delete(url, headers=ADMIN).status_code == 404
