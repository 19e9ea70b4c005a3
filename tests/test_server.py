"""Tests for the viewer-host API."""

import fitz  # PyMuPDF
import pytest
from fastapi.testclient import TestClient

from pdf_layout_server import server


@pytest.fixture
def storage_dir(tmp_path, monkeypatch):
    """Storage directory with an outlined, a plain and an encrypted PDF."""
    storage = tmp_path / "storage"
    storage.mkdir()

    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "Quarterly report", fontsize=12, fontname="helv")
    doc.new_page().insert_text((72, 72), "Appendix", fontsize=12, fontname="helv")
    doc.set_toc([[1, "Report", 1], [1, "Appendix", 2]])
    doc.save(storage / "report.pdf")
    doc.close()

    doc = fitz.open()
    doc.new_page().insert_text((72, 72), "Plain", fontsize=12, fontname="helv")
    doc.save(storage / "plain.pdf")
    doc.close()

    doc = fitz.open()
    doc.new_page().insert_text((72, 72), "Confidential", fontsize=12, fontname="helv")
    doc.save(
        storage / "locked.pdf",
        encryption=fitz.PDF_ENCRYPT_AES_256,
        owner_pw="owner",
        user_pw="pw",
    )
    doc.close()

    monkeypatch.setattr(server, "PDF_STORAGE_DIR", storage)
    return storage


@pytest.fixture
def client(storage_dir):
    with TestClient(server.app) as test_client:
        yield test_client


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready(self, client):
        response = client.get("/ready")
        assert response.json()["checks"] == {"storage": True}


class TestPageEndpoints:
    """Tests for search, text and links endpoints."""

    def test_search(self, client):
        response = client.post(
            "/api/v1/pages/search",
            json={"file_path": "report.pdf", "page_index": 0, "query": "QUARTERLY"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["page_index"] == 0
        assert len(body["rectangles"]) == 1
        assert body["rectangles"][0]["x1"] == pytest.approx(72, abs=1)

    def test_text(self, client):
        response = client.post(
            "/api/v1/pages/text",
            json={
                "file_path": "report.pdf",
                "page_index": 1,
                "rectangle": {"x1": 0, "y1": 0, "x2": 1000, "y2": 1000},
            },
        )
        assert response.status_code == 200
        assert response.json()["text"].strip() == "Appendix"

    def test_text_empty_region(self, client):
        response = client.post(
            "/api/v1/pages/text",
            json={
                "file_path": "report.pdf",
                "page_index": 0,
                "rectangle": {"x1": 400, "y1": 600, "x2": 500, "y2": 700},
            },
        )
        assert response.status_code == 200
        assert response.json()["text"] is None

    def test_links_empty(self, client):
        response = client.post(
            "/api/v1/pages/links", json={"file_path": "plain.pdf", "page_index": 0}
        )
        assert response.status_code == 200
        assert response.json()["links"] == []

    def test_page_out_of_range(self, client):
        response = client.post(
            "/api/v1/pages/search",
            json={"file_path": "report.pdf", "page_index": 5, "query": "report"},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_ARGUMENTS"


class TestDocumentEndpoints:
    """Tests for index, information and lifecycle endpoints."""

    def test_index(self, client):
        response = client.post("/api/v1/documents/index", json={"file_path": "report.pdf"})
        assert response.status_code == 200
        root = response.json()
        assert root["title"] == "ROOT"
        assert root["link"] is None
        assert [child["title"] for child in root["children"]] == ["Report", "Appendix"]
        assert root["children"][1]["link"]["page_number"] == 1

    def test_index_without_outline(self, client):
        response = client.post("/api/v1/documents/index", json={"file_path": "plain.pdf"})
        assert response.status_code == 422
        assert response.json()["code"] == "OPERATION_FAILED"

    def test_information(self, client):
        response = client.post(
            "/api/v1/documents/information", json={"file_path": "report.pdf"}
        )
        assert response.status_code == 200
        assert isinstance(response.json()["entries"], list)

    def test_missing_file(self, client):
        response = client.post("/api/v1/documents/index", json={"file_path": "missing.pdf"})
        assert response.status_code == 404
        assert response.json()["code"] == "FILE_NOT_FOUND"

    def test_path_outside_storage(self, client, storage_dir):
        outside = storage_dir.parent / "outside.pdf"
        doc = fitz.open()
        doc.new_page()
        doc.save(outside)
        doc.close()

        response = client.post(
            "/api/v1/documents/index", json={"file_path": "../outside.pdf"}
        )
        assert response.status_code == 403
        assert response.json()["code"] == "ACCESS_DENIED"

    def test_close(self, client):
        client.post(
            "/api/v1/pages/search",
            json={"file_path": "report.pdf", "page_index": 0, "query": "report"},
        )
        response = client.post("/api/v1/documents/close", json={"file_path": "report.pdf"})
        assert response.json() == {"closed": True}
        response = client.post("/api/v1/documents/close", json={"file_path": "report.pdf"})
        assert response.json() == {"closed": False}

    def test_upload(self, client, storage_dir):
        doc = fitz.open()
        doc.new_page()
        doc.new_page()
        data = doc.tobytes()
        doc.close()

        response = client.post(
            "/api/v1/documents",
            files={"file": ("uploaded.pdf", data, "application/pdf")},
        )
        assert response.status_code == 200
        assert response.json() == {"file_path": "uploaded.pdf", "page_count": 2}
        assert (storage_dir / "uploaded.pdf").exists()

    def test_upload_rejects_non_pdf(self, client):
        response = client.post(
            "/api/v1/documents",
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )
        assert response.status_code == 400

    def test_upload_rejects_bad_header(self, client):
        response = client.post(
            "/api/v1/documents",
            files={"file": ("fake.pdf", b"not a pdf", "application/pdf")},
        )
        assert response.status_code == 400


class TestPasswords:
    """Tests for encrypted documents."""

    def _text(self, client, password=None):
        return client.post(
            "/api/v1/pages/text",
            json={
                "file_path": "locked.pdf",
                "page_index": 0,
                "password": password,
                "rectangle": {"x1": 0, "y1": 0, "x2": 1000, "y2": 1000},
            },
        )

    def test_missing_password(self, client):
        response = self._text(client)
        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_PASSWORD"

    def test_cached_document_still_requires_password(self, client):
        response = client.post(
            "/api/v1/pages/search",
            json={
                "file_path": "locked.pdf",
                "page_index": 0,
                "query": "confidential",
                "password": "pw",
            },
        )
        assert response.status_code == 200
        assert len(response.json()["rectangles"]) == 1

        assert self._text(client).status_code == 401
        assert self._text(client, password="guess").status_code == 401

        response = self._text(client, password="pw")
        assert response.status_code == 200
        assert response.json()["text"].strip() == "Confidential"

    def test_owner_password_on_cached_document(self, client):
        assert self._text(client, password="pw").status_code == 200
        assert self._text(client, password="owner").status_code == 200


class TestRegistry:
    """Tests for the open-document cache."""

    def test_evicts_least_recently_used(self, storage_dir):
        registry = server.DocumentRegistry(max_open=1)
        report = (storage_dir / "report.pdf").resolve()

        with registry.open(report) as first:
            pass
        with registry.open((storage_dir / "plain.pdf").resolve()):
            pass

        assert len(registry) == 1
        assert first.backend._doc.is_closed
        with registry.open(report) as reopened:
            assert reopened is not first
        registry.close_all()
        assert len(registry) == 0

    def test_evicted_document_stays_open_while_in_use(self, storage_dir):
        registry = server.DocumentRegistry(max_open=1)

        with registry.open((storage_dir / "report.pdf").resolve()) as document:
            with registry.open((storage_dir / "plain.pdf").resolve()):
                pass
            assert len(registry) == 1
            assert len(document.page(0).search("quarterly")) == 1

        assert document.backend._doc.is_closed
        registry.close_all()

    def test_close_while_in_use(self, storage_dir):
        registry = server.DocumentRegistry()
        report = (storage_dir / "report.pdf").resolve()

        with registry.open(report) as document:
            assert registry.close(report)
            assert len(document.page(0).search("quarterly")) == 1

        assert document.backend._doc.is_closed
        assert not registry.close(report)

    def test_wrong_password_on_cache_hit(self, storage_dir):
        registry = server.DocumentRegistry()
        locked = (storage_dir / "locked.pdf").resolve()

        with registry.open(locked, password="pw"):
            pass
        with pytest.raises(server.InvalidPasswordError):
            with registry.open(locked, password="guess"):
                pass
        registry.close_all()
