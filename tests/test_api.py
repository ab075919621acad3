"""HTTP API tests: reports, volunteers, uploads, seed, health."""
import json

from conftest import PNG_BYTES


def report_form(**overrides):
    form = {
        "type": "emergency",
        "description": "Dog with a wound on the neck",
        "location": "Bejai, Mangaluru",
        "reporterName": "Asha",
        "reporterPhone": "9876543210",
        "coordinates": json.dumps({"latitude": 12.88, "longitude": 74.84}),
        "aiPriority": "High",
        "aiJustification": "Open wound.",
    }
    form.update(overrides)
    return form


def png_upload(name="dog.png"):
    return {"media": (name, PNG_BYTES, "image/png")}


class TestReports:
    def test_create_report(self, app_client):
        r = app_client.post("/api/reports", data=report_form(), files=png_upload())
        assert r.status_code == 201
        body = r.json()
        assert body["id"].startswith("RPT-")
        assert body["type"] == "emergency"
        assert body["status"] == "Open"
        assert body["mediaType"] == "image"
        assert body["coordinates"] == {"latitude": 12.88, "longitude": 74.84}
        assert body["aiPriority"] == "High"
        assert body["mediaUrl"].startswith("http://testserver/uploads/media-")

        media = app_client.get(body["mediaUrl"].replace("http://testserver", ""))
        assert media.status_code == 200
        assert media.content == PNG_BYTES

    def test_video_report(self, app_client):
        files = {"media": ("clip.mp4", b"\x00\x00\x00\x18ftypmp42", "video/mp4")}
        r = app_client.post("/api/reports", data=report_form(aiPriority="Manual Review"), files=files)
        assert r.status_code == 201
        assert r.json()["mediaType"] == "video"

    def test_media_required(self, app_client):
        r = app_client.post("/api/reports", data=report_form())
        assert r.status_code == 400
        assert r.json() == {"message": "Media file is required."}

    def test_unknown_type_rejected(self, app_client):
        r = app_client.post("/api/reports", data=report_form(type="lost_wallet"), files=png_upload())
        assert r.status_code == 400
        assert r.json()["message"].startswith("Error saving report:")

    def test_bad_coordinates_rejected(self, app_client):
        r = app_client.post("/api/reports", data=report_form(coordinates="12.88,74.84"), files=png_upload())
        assert r.status_code == 400
        assert "coordinates" in r.json()["message"]

    def test_missing_reporter_rejected(self, app_client):
        r = app_client.post("/api/reports", data=report_form(reporterName="  "), files=png_upload())
        assert r.status_code == 400
        assert "reporterName" in r.json()["message"]

    def test_unsupported_media_rejected(self, app_client):
        files = {"media": ("notes.txt", b"hello", "text/plain")}
        r = app_client.post("/api/reports", data=report_form(), files=files)
        assert r.status_code == 400
        assert r.json()["message"].startswith("Unsupported file type")

    def test_list_newest_first(self, app_client):
        first = app_client.post("/api/reports", data=report_form(description="first report here"), files=png_upload())
        second = app_client.post("/api/reports", data=report_form(description="second report here"), files=png_upload())
        ids = [r["id"] for r in app_client.get("/api/reports").json()]
        assert ids == [second.json()["id"], first.json()["id"]]

    def test_update_status(self, app_client):
        report_id = app_client.post("/api/reports", data=report_form(), files=png_upload()).json()["id"]
        r = app_client.patch(f"/api/reports/{report_id}/status", json={"status": "In Progress"})
        assert r.status_code == 200
        assert r.json()["status"] == "In Progress"
        assert app_client.get("/api/reports").json()[0]["status"] == "In Progress"

    def test_update_status_invalid_value(self, app_client):
        report_id = app_client.post("/api/reports", data=report_form(), files=png_upload()).json()["id"]
        r = app_client.patch(f"/api/reports/{report_id}/status", json={"status": "Closed"})
        assert r.status_code == 400
        assert r.json() == {"message": "Invalid status value."}

    def test_update_status_unknown_report(self, app_client):
        r = app_client.patch("/api/reports/RPT-NOPE/status", json={"status": "Resolved"})
        assert r.status_code == 404
        assert r.json() == {"message": "Report not found."}

    def test_malformed_body_uses_message_shape(self, app_client):
        r = app_client.patch("/api/reports/RPT-NOPE/status", json={"state": "Resolved"})
        assert r.status_code == 400
        assert r.json()["message"].startswith("Invalid request:")


class TestVolunteers:
    def test_register_and_list(self, app_client):
        r = app_client.post("/api/volunteers", json={
            "name": "Rohan", "email": "rohan@example.org", "phone": "9845100001", "interests": ["rescue"],
        })
        assert r.status_code == 201
        body = r.json()
        assert body["id"].startswith("VOL-")
        assert "registeredAt" in body

        listed = app_client.get("/api/volunteers").json()
        assert [v["name"] for v in listed] == ["Rohan"]

    def test_register_requires_fields(self, app_client):
        r = app_client.post("/api/volunteers", json={"name": "", "email": "a@b.c", "phone": "1"})
        assert r.status_code == 400


class TestUploads:
    def test_missing_file(self, app_client):
        r = app_client.get("/uploads/media-missing.png")
        assert r.status_code == 404
        assert r.json() == {"message": "File not found"}


class TestSeedAndHealth:
    def test_seed_is_idempotent(self, app_client):
        first = app_client.post("/api/seed").json()
        assert first["status"] == "seeded"
        assert first["inserted"] == {"reports": 3, "volunteers": 2}
        again = app_client.post("/api/seed").json()
        assert again["status"] == "skipped"
        assert again["totals"] == {"reports": 3, "volunteers": 2}

        reports = app_client.get("/api/reports").json()
        assert len(reports) == 3
        assert reports[0]["type"] == "emergency"
        assert {r["mediaUrl"].rsplit(".", 1)[1] for r in reports} == {"jpg", "mp4"}
        assert len(app_client.get("/api/volunteers").json()) == 2

    def test_seed_reset_replaces_existing_data(self, app_client):
        app_client.post("/api/reports", data=report_form(), files=png_upload())
        assert app_client.post("/api/seed").json()["status"] == "skipped"

        body = app_client.post("/api/seed?reset=true").json()
        assert body["status"] == "seeded"
        assert body["totals"] == {"reports": 3, "volunteers": 2}

    def test_health(self, app_client):
        body = app_client.get("/health").json()
        assert body["status"] == "ok"
        assert "ai_enabled" in body
