import os
import tempfile

import pytest
from fastapi.testclient import TestClient

# Settings are read at import time, so point uploads at a scratch directory first.
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="pdf-dashboard-"))
os.environ.setdefault("STORAGE_BACKEND", "local")
os.environ.setdefault("PUBLIC_BASE_URL", "http://testserver")

from pdf_dashboard.exceptions import ObjectExistsError  # noqa: E402
from pdf_dashboard.main import app  # noqa: E402
from pdf_dashboard.models.file import StorageEntry, UploadResult  # noqa: E402

PDF_BYTES = b"%PDF-1.4\n1 0 obj << /Type /Catalog >> endobj\ntrailer << /Root 1 0 R >>\n%%EOF\n"


class FakeStorage:
    bucket = "pdf-files"

    def __init__(self):
        self.entries: list[StorageEntry] = []
        self.uploads: list[dict] = []
        self.list_calls: list[dict] = []
        self.list_error: Exception | None = None
        self.upload_error: Exception | None = None
        self.assigned_id: str | None = None

    async def list(self, prefix="", limit=100, offset=0):
        self.list_calls.append({"prefix": prefix, "limit": limit, "offset": offset})
        if self.list_error:
            raise self.list_error
        return self.entries[offset : offset + limit]

    async def upload(self, key, payload, cache_control="3600", overwrite=False, content_type=None):
        self.uploads.append(
            {"key": key, "payload": payload, "cache_control": cache_control, "overwrite": overwrite}
        )
        if self.upload_error:
            raise self.upload_error
        if not overwrite and any(entry.name == key for entry in self.entries):
            raise ObjectExistsError(f"The resource already exists: {key}")
        self.entries.append(StorageEntry(name=key, id=self.assigned_id, metadata={"size": len(payload)}))
        return UploadResult(id=self.assigned_id, path=key)

    def get_public_url(self, key):
        return f"https://storage.test/{self.bucket}/{key}"


class FakeWidget:
    def __init__(self, error: Exception | None = None, available: bool = True):
        self.error = error
        self.available = available
        self.loaded: list[dict] = []
        self.unloaded: list[str] = []

    async def load(self, container, document, **options):
        self.loaded.append({"container": container, "document": document})
        if self.error:
            raise self.error
        return {"container": container}

    async def unload(self, target):
        self.unloaded.append(target)


@pytest.fixture()
def fake_storage():
    return FakeStorage()


@pytest.fixture()
def pdf_bytes():
    return PDF_BYTES


@pytest.fixture()
def local_client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def client(fake_storage):
    with TestClient(app) as test_client:
        app.state.storage = fake_storage
        yield test_client
        app.state.viewer_widget = None
