from urllib.parse import urlparse

from conftest import FakeWidget
from pdf_dashboard.exceptions import StorageAccessError, StorageError
from pdf_dashboard.main import app
from pdf_dashboard.models.file import StorageEntry


def test_health_endpoint(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert "X-Request-ID" in resp.headers


def test_upload_then_list_round_trips_bytes(local_client, pdf_bytes):
    resp = local_client.post("/upload", files={"file": ("round trip.pdf", pdf_bytes, "application/pdf")})
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    uploaded = body["file"]
    assert uploaded["name"].endswith("_round_trip.pdf")
    assert uploaded["originalName"] == "round trip.pdf"

    listing = local_client.get("/files").json()
    match = next(f for f in listing["files"] if f["name"] == uploaded["name"])
    assert match["size"] == len(pdf_bytes)

    fetched = local_client.get(urlparse(match["url"]).path)
    assert fetched.status_code == 200
    assert fetched.content == pdf_bytes


def test_upload_without_file_field(client, fake_storage):
    resp = client.post("/upload", data={"other": "x"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "No file provided"}
    assert fake_storage.uploads == []


def test_upload_empty_file(client, fake_storage):
    resp = client.post("/upload", files={"file": ("empty.pdf", b"", "application/pdf")})
    assert resp.status_code == 400
    assert resp.json()["error"] == "File appears to be empty"
    assert fake_storage.uploads == []


def test_upload_oversized_file(client, fake_storage, monkeypatch):
    limited = app.state.settings.model_copy(update={"max_upload_bytes": 64})
    monkeypatch.setattr(app.state, "settings", limited)
    resp = client.post("/upload", files={"file": ("big.pdf", b"%PDF" + b"0" * 61, "application/pdf")})
    assert resp.status_code == 400
    assert fake_storage.uploads == []


def test_upload_rejects_denylisted_type(client, fake_storage):
    resp = client.post("/upload", files={"file": ("notes.txt", b"hello", "text/plain")})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Only PDF files are allowed"


def test_upload_policy_error_flags_setup(client, fake_storage, pdf_bytes):
    fake_storage.upload_error = StorageAccessError("new row violates row-level security policy", policy=True)
    resp = client.post("/upload", files={"file": ("a.pdf", pdf_bytes, "application/pdf")})
    assert resp.status_code == 403
    assert resp.json()["needsSetup"] is True


def test_upload_generic_error(client, fake_storage, pdf_bytes):
    fake_storage.upload_error = StorageError("disk full")
    resp = client.post("/upload", files={"file": ("a.pdf", pdf_bytes, "application/pdf")})
    assert resp.status_code == 500
    assert resp.json()["error"] == "Upload failed: disk full"


def test_list_files_response_shape(client, fake_storage):
    fake_storage.entries = [
        StorageEntry(name="1_a.pdf", id="abc", metadata={"size": 5}),
        StorageEntry(name="2_b.png"),
    ]
    body = client.get("/files").json()
    assert body["bucket"] == "pdf-files"
    assert body["totalFiles"] == 2
    assert body["pdfCount"] == 1
    only = body["files"][0]
    assert set(only) == {"id", "name", "url", "uploadedAt", "size"}
    assert only["id"] == "abc"


def test_list_files_empty(client):
    resp = client.get("/files")
    assert resp.status_code == 200
    assert resp.json()["files"] == []


def test_list_files_access_error(client, fake_storage):
    fake_storage.list_error = StorageAccessError("new row violates row-level security policy", policy=True)
    resp = client.get("/files")
    assert resp.status_code == 403
    assert resp.json()["needsSetup"] is True


def test_get_file_by_id_name_and_missing(client, fake_storage):
    fake_storage.entries = [StorageEntry(name="1700000000000_deck.pdf", id="deck-id")]
    assert client.get("/files/deck-id").json()["file"]["name"] == "1700000000000_deck.pdf"
    assert client.get("/files/1700000000000_deck.pdf").json()["file"]["id"] == "deck-id"
    assert client.get("/files/deck").status_code == 200

    missing = client.get("/files/unknown")
    assert missing.status_code == 404
    assert missing.json() == {"error": "File not found"}


def test_viewer_falls_back_without_widget(client, fake_storage):
    fake_storage.entries = [StorageEntry(name="1_a.pdf")]
    body = client.get("/files/1_a.pdf/viewer").json()
    assert body["state"] == "fallback-frame-active"
    assert body["mode"] == "embedded-frame"
    assert body["documentUrl"] == "https://storage.test/pdf-files/1_a.pdf"


def test_viewer_uses_configured_widget_and_unloads(client, fake_storage):
    fake_storage.entries = [StorageEntry(name="1_a.pdf")]
    widget = FakeWidget()
    app.state.viewer_widget = widget

    body = client.get("/files/1_a.pdf/viewer").json()

    assert body["state"] == "viewer-active"
    assert widget.unloaded == ["viewer-1_a.pdf"]


def test_viewer_incompatible_widget(client, fake_storage):
    fake_storage.entries = [StorageEntry(name="1_a.pdf")]
    app.state.viewer_widget = FakeWidget(error=RuntimeError("browser not supported"))
    body = client.get("/files/1_a.pdf/viewer").json()
    assert body["state"] == "fallback-frame-active"
    assert body["incompatible"] is True


def test_frame_error_is_terminal(client, fake_storage):
    fake_storage.entries = [StorageEntry(name="1_a.pdf")]
    body = client.post("/files/1_a.pdf/viewer/frame-error").json()
    assert body["state"] == "frame-unavailable"
    assert body["actions"] == ["download", "open-in-new-tab"]


def test_debug_route(client, fake_storage):
    fake_storage.entries = [StorageEntry(name="1_a.pdf", id="x1")]
    body = client.get("/debug/files/x1").json()
    assert body["searchingFor"] == "x1"
    assert body["found"] is True
    assert body["allFiles"] == [{"id": "x1", "name": "1_a.pdf"}]
    assert body["totalFiles"] == 1


def test_malformed_upload_field_uses_error_contract(client, fake_storage):
    resp = client.post("/upload", data={"file": "not-a-file"})
    assert resp.status_code == 400
    body = resp.json()
    assert set(body) == {"error"}
    assert body["error"].startswith("Malformed request:")
    assert "file" in body["error"]
    assert fake_storage.uploads == []


def test_viewer_session_uses_camel_case(client, fake_storage):
    fake_storage.entries = [StorageEntry(name="1_a.pdf")]
    body = client.get("/files/1_a.pdf/viewer").json()
    assert {"documentUrl", "fileName", "widgetAvailable", "fallbackReason"} <= set(body)
    assert "document_url" not in body
    assert body["fileName"] == "1_a.pdf"


def test_entry_point_runs_uvicorn(monkeypatch):
    import pdf_dashboard.__main__ as entry

    calls = []
    monkeypatch.setattr(entry.uvicorn, "run", lambda target, **kwargs: calls.append((target, kwargs)))

    entry.main()

    target, kwargs = calls[0]
    assert target == "pdf_dashboard.main:app"
    assert kwargs["port"] == entry.settings.port
