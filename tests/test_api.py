"""
HTTP API - routes, error mapping and the cron trigger through FastAPI's TestClient.

Dates are relative to the service clock since routes read the current time.

Run: pytest tests/test_api.py -v
"""

from datetime import timedelta

from modules.maintenance.classifier import local_now


def _iso(dt):
    return dt.replace(microsecond=0).isoformat()


def _create(client, **fields):
    payload = {"asset_id": "AST-001", "asset_name": "Air Compressor",
               "scheduled_date": _iso(local_now() + timedelta(days=3))}
    payload.update(fields)
    r = client.post("/api/maintenance", json=payload)
    assert r.status_code == 201, r.text
    return r.json()


class TestHealth:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] in ("ok", "degraded")


class TestRecords:
    def test_create_and_get(self, client):
        created = _create(client, recurrence_frequency="Every 6 Months")
        assert created["recurrence_frequency"] == "semiannual"
        assert created["effective_status"] == "scheduled"
        assert created["due_soon"] is True

        r = client.get(f"/api/maintenance/{created['id']}")
        assert r.status_code == 200
        assert r.json()["asset_name"] == "Air Compressor"

    def test_v1_prefix(self, client):
        created = _create(client)
        assert client.get(f"/api/v1/maintenance/{created['id']}").status_code == 200

    def test_invalid_frequency_is_400(self, client):
        r = client.post("/api/maintenance", json={
            "asset_id": "AST-001", "asset_name": "x",
            "scheduled_date": _iso(local_now()), "recurrence_frequency": "sometimes",
        })
        assert r.status_code == 400
        assert "sometimes" in r.json()["detail"]

    def test_derived_field_is_rejected(self, client):
        r = client.post("/api/maintenance", json={
            "asset_id": "AST-001", "asset_name": "x",
            "scheduled_date": _iso(local_now()), "effective_status": "overdue",
        })
        assert r.status_code == 422

    def test_missing_record_is_404(self, client):
        assert client.get("/api/maintenance/424242").status_code == 404

    def test_lifecycle(self, client):
        created = _create(client, recurrence_frequency="weekly")
        rid = created["id"]

        r = client.post(f"/api/maintenance/{rid}/start", json={"technician": "R. Diaz"})
        assert r.status_code == 200
        assert r.json()["manual_status"] == "in_progress"

        r = client.post(f"/api/maintenance/{rid}/complete", json={"notes": "done"})
        assert r.status_code == 200
        body = r.json()
        assert body["maintenance"]["manual_status"] == "completed"
        assert body["maintenance"]["completed_by"] == "R. Diaz"
        assert body["follow_up"]["manual_status"] == "scheduled"
        assert body["next_maintenance_date"] is not None

        r = client.post(f"/api/maintenance/{rid}/cancel")
        assert r.status_code == 409

    def test_reschedule_and_patch(self, client):
        rid = _create(client)["id"]
        new_date = _iso(local_now() + timedelta(days=40))
        r = client.post(f"/api/maintenance/{rid}/reschedule", json={"scheduled_date": new_date})
        assert r.status_code == 200
        assert r.json()["due_soon"] is False

        r = client.patch(f"/api/maintenance/{rid}", json={"technician": "K. Osei", "cost": 12.5})
        assert r.status_code == 200
        assert r.json()["technician"] == "K. Osei"

    def test_delete(self, client):
        rid = _create(client)["id"]
        assert client.delete(f"/api/maintenance/{rid}").status_code == 204
        assert client.get(f"/api/maintenance/{rid}").status_code == 404


class TestViews:
    def test_overdue_due_and_dashboard(self, client):
        late = _create(client, scheduled_date=_iso(local_now() - timedelta(days=2)))
        soon = _create(client, scheduled_date=_iso(local_now() + timedelta(days=1)))

        overdue = client.get("/api/maintenance/overdue").json()
        assert [r["id"] for r in overdue] == [late["id"]]
        assert overdue[0]["effective_status"] == "overdue"
        assert overdue[0]["manual_status"] == "scheduled"

        due = client.get("/api/maintenance/due").json()
        assert [r["id"] for r in due] == [soon["id"]]

        counts = client.get("/api/maintenance/dashboard").json()
        assert counts["overdue"] == 1
        assert counts["due_soon"] == 1

        by_status = client.get("/api/maintenance", params={"status": "overdue"}).json()
        assert [r["id"] for r in by_status] == [late["id"]]

    def test_calendar(self, client):
        base = local_now().replace(hour=0, minute=0, second=0, microsecond=0) + timedelta(days=1)
        _create(client, scheduled_date=_iso(base.replace(hour=8)))
        _create(client, scheduled_date=_iso(base.replace(hour=20)))
        r = client.get("/api/maintenance/calendar", params={"year": base.year, "month": base.month})
        assert r.status_code == 200
        assert len(r.json()["days"][base.date().isoformat()]) == 2

    def test_statistics_empty(self, client):
        r = client.get("/api/maintenance/statistics", params={"service_type": "Nothing"})
        assert r.status_code == 200
        body = r.json()
        assert (body["total_records"], body["total_cost"], body["average_cost"]) == (0, 0, 0)

    def test_asset_views(self, client):
        _create(client, asset_id="AST-42", cost=30)
        _create(client, asset_id="AST-42", cost=10)
        _create(client, asset_id="AST-43")
        assert len(client.get("/api/maintenance/asset/AST-42").json()) == 2
        stats = client.get("/api/maintenance/asset/AST-42/statistics").json()
        assert stats["total_records"] == 2
        assert stats["average_cost"] == 20

    def test_upcoming_and_history(self, client):
        rid = _create(client)["id"]
        assert [r["id"] for r in client.get("/api/maintenance/upcoming", params={"days": 7}).json()] == [rid]
        client.post(f"/api/maintenance/{rid}/complete")
        assert [r["id"] for r in client.get("/api/maintenance/history").json()] == [rid]


class TestCronAndNotifications:
    def test_due_check_notifies_once(self, client):
        late = _create(client, scheduled_date=_iso(local_now() - timedelta(days=1)))

        first = client.post("/api/cron/maintenance-notifications").json()
        second = client.post("/api/cron/maintenance-notifications").json()
        assert first["overdue_count"] == 1
        assert first["notifications_created"] == 1
        assert second["notifications_created"] == 0
        assert second["notifications_skipped"] == 1

        notes = client.get("/api/notifications", params={"role": "admin"}).json()
        assert len(notes) == 1
        assert notes[0]["maintenance_id"] == late["id"]
        assert notes[0]["priority"] == "high"

        status = client.get("/api/cron/status").json()
        assert status["last_run"]["notifications_skipped"] == 1

    def test_notification_inbox(self, client):
        r = client.post("/api/notifications", json={
            "title": "Welcome", "message": "Hello", "recipient_user_id": "u1",
        })
        assert r.status_code == 201
        nid = r.json()["id"]

        assert client.get("/api/notifications/unread-count", params={"user_id": "u1"}).json() == {"unread_count": 1}
        assert client.patch(f"/api/notifications/{nid}/read", params={"user_id": "u1"}).json()["is_read"] is True
        assert client.get("/api/notifications/summary", params={"user_id": "u1"}).json()["unread"] == 0
        assert client.post("/api/notifications/mark-all-read", params={"user_id": "u1"}).json()["updated"] == 0
        assert client.delete(f"/api/notifications/{nid}", params={"user_id": "u1"}).status_code == 204
        assert client.delete("/api/notifications", params={"user_id": "u1"}).json()["deleted"] == 0

    def test_generic_create_cannot_add_a_second_maintenance_notification(self, client):
        late = _create(client, scheduled_date=_iso(local_now() - timedelta(days=1)))
        client.post("/api/cron/maintenance-notifications")

        r = client.post("/api/notifications", json={
            "title": "Maintenance Overdue", "message": "again", "recipient_role": "admin",
            "notification_type": "maintenance", "maintenance_id": late["id"],
        })
        assert r.status_code == 400
        notes = client.get("/api/notifications", params={"role": "admin", "type": "maintenance"}).json()
        assert len(notes) == 1
