"""
Tests for Flask API routes.

Tests the REST API endpoints.
"""

import pytest
import json
import io
from unittest.mock import Mock, patch

from PIL import Image

from app import create_app
from src.errors import RecognitionError
from src.models import ContactRecord
from src.ocr import OCRResult
from src.store import RecordStore


def make_image() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (80, 40), color="white").save(buffer, format="PNG")
    return buffer.getvalue()


class TestAPIRoutes:
    """Test cases for API routes."""
    
    @pytest.fixture
    def app(self):
        """Create test Flask app."""
        app = create_app("testing")
        app.config["TESTING"] = True
        return app
    
    @pytest.fixture
    def pipeline(self, app):
        """Pipeline of the test app with a mocked OCR engine."""
        pipeline = app.extensions["card_pipeline"]
        pipeline.ocr = Mock()
        pipeline.ocr.recognize.return_value = OCRResult(
            text="Jane Doe\nAcme Corp\nSenior Engineer\njane@acme.com",
            confidence=72
        )
        return pipeline
    
    @pytest.fixture
    def client(self, app):
        """Create test client."""
        return app.test_client()
    
    def test_root_endpoint(self, client):
        """Test root endpoint returns API info."""
        response = client.get("/")
        
        assert response.status_code == 200
        data = json.loads(response.data)
        assert "name" in data
        assert "endpoints" in data
    
    def test_health_check(self, client):
        """Test health check endpoint."""
        response = client.get("/api/health")
        
        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["success"] is True
        assert data["status"] == "healthy"
    
    def test_status_endpoint(self, client):
        """Test status endpoint."""
        with patch("api.routes.get_pipeline") as mock_get_pipeline:
            mock_pipeline = Mock()
            mock_pipeline.get_status.return_value = {"ocr_engine": "easyocr"}
            mock_get_pipeline.return_value = mock_pipeline
            
            response = client.get("/api/status")
            
            assert response.status_code == 200
            assert json.loads(response.data)["data"]["ocr_engine"] == "easyocr"
    
    def test_languages(self, client):
        response = client.get("/api/languages")
        
        codes = [lang["code"] for lang in json.loads(response.data)["data"]]
        assert codes == ["eng", "hin", "mar"]
    
    def test_scan_no_file(self, client):
        """Test scan endpoint without file."""
        response = client.post("/api/scan")
        
        assert response.status_code == 400
        assert json.loads(response.data)["success"] is False
    
    def test_scan_empty_filename(self, client):
        """Test scan endpoint with empty filename."""
        response = client.post(
            "/api/scan",
            data={"file": (io.BytesIO(b""), "")},
            content_type="multipart/form-data"
        )
        
        assert response.status_code == 400
    
    def test_scan_invalid_extension(self, client, pipeline):
        """Test scan endpoint with invalid file type."""
        response = client.post(
            "/api/scan",
            data={"file": (io.BytesIO(b"test"), "test.txt")},
            content_type="multipart/form-data"
        )
        
        assert response.status_code == 400
        data = json.loads(response.data)
        assert data["error_type"] == "ValidationError"
        pipeline.ocr.recognize.assert_not_called()
    
    def test_scan_success(self, client, pipeline):
        """Test successful card scan."""
        response = client.post(
            "/api/scan",
            data={"file": (io.BytesIO(make_image()), "card.png"), "language": "mar"},
            content_type="multipart/form-data"
        )
        
        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["success"] is True
        assert data["item"]["contactInfo"]["name"] == "Jane Doe"
        assert data["item"]["language"] == "mar"
        assert data["item"]["confidenceLevel"] == "medium"
        assert len(pipeline.store) == 1
    
    def test_scan_recognition_failure(self, client, pipeline):
        """Test OCR failure is reported and nothing is stored."""
        pipeline.ocr.recognize.side_effect = RecognitionError("Failed to process the business card.")
        
        response = client.post(
            "/api/scan",
            data={"file": (io.BytesIO(make_image()), "card.png")},
            content_type="multipart/form-data"
        )
        
        assert response.status_code == 502
        assert len(pipeline.store) == 0

    def test_scan_storage_failure(self, client, pipeline):
        """Test a failed history write returns 500 with a readable error."""
        snapshot = Mock()
        snapshot.load.return_value = []
        snapshot.save.side_effect = OSError("disk full")
        pipeline.store = RecordStore(snapshot)

        response = client.post(
            "/api/scan",
            data={"file": (io.BytesIO(make_image()), "card.png")},
            content_type="multipart/form-data"
        )

        assert response.status_code == 500
        data = json.loads(response.data)
        assert data["error_type"] == "StorageError"
        assert pipeline.progress == 0

    def test_parse_text_no_data(self, client):
        """Test parse-text endpoint without data."""
        response = client.post("/api/parse-text")
        
        assert response.status_code == 400
    
    def test_parse_text_success(self, client):
        """Test successful text parsing."""
        response = client.post(
            "/api/parse-text",
            data=json.dumps({"text": "John Doe\njohn@example.com", "confidence": 64}),
            content_type="application/json"
        )
        
        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["contact_data"]["name"] == "John Doe"
        assert data["contact_data"]["confidence"] == 64
    
    def test_history_flow(self, client, pipeline):
        """Test list, select, edit and delete of history items."""
        item = pipeline.store.add(ContactRecord(name="Jane Doe", confidence=70), "img", "eng")
        
        response = client.get("/api/history")
        assert [i["id"] for i in json.loads(response.data)["data"]["items"]] == [item.id]
        
        response = client.get(f"/api/history/{item.id}")
        assert response.status_code == 200
        assert pipeline.store.selected.id == item.id
        
        response = client.put(
            f"/api/history/{item.id}",
            data=json.dumps({"name": "Jane Smith", "email": "jane@smith.io"}),
            content_type="application/json"
        )
        assert response.status_code == 200
        contact = json.loads(response.data)["data"]["contactInfo"]
        assert contact["name"] == "Jane Smith"
        assert contact["email"] == "jane@smith.io"
        assert contact["confidence"] == 70
        
        response = client.delete(f"/api/history/{item.id}")
        assert response.status_code == 200
        assert len(pipeline.store) == 0
        assert pipeline.store.selected is None
    
    def test_edit_clears_field(self, client, pipeline):
        item = pipeline.store.add(ContactRecord(name="Jane Doe", phone="5551234567"), "img", "eng")
        
        response = client.put(
            f"/api/history/{item.id}",
            data=json.dumps({"phone": ""}),
            content_type="application/json"
        )
        
        assert response.status_code == 200
        assert pipeline.store.get(item.id).contact.phone is None
    
    def test_history_not_found(self, client, pipeline):
        assert client.get("/api/history/missing").status_code == 404
        assert client.delete("/api/history/missing").status_code == 404
        response = client.put(
            "/api/history/missing",
            data=json.dumps({"name": "X"}),
            content_type="application/json"
        )
        assert response.status_code == 404
    
    def test_import_success(self, client, pipeline):
        response = client.post(
            "/api/import",
            data={"file": (io.BytesIO(b'Name,Email\n"Bob","bob@x.com"'), "contacts.csv")},
            content_type="multipart/form-data"
        )
        
        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["count"] == 1
        assert data["items"][0]["contactInfo"] == {"name": "Bob", "email": "bob@x.com", "confidence": 100, "rawText": ""}
    
    def test_import_too_many(self, client, pipeline):
        rows = "\n".join(f"P{i},p{i}@x.com" for i in range(51))
        
        response = client.post(
            "/api/import",
            data={"file": (io.BytesIO(("Name,Email\n" + rows).encode("utf-8")), "contacts.csv")},
            content_type="multipart/form-data"
        )
        
        assert response.status_code == 400
        data = json.loads(response.data)
        assert data["error_type"] == "TooManyRecordsError"
        assert data["count"] == 51
        assert len(pipeline.store) == 0
    
    def test_import_bad_header(self, client, pipeline):
        response = client.post(
            "/api/import",
            data={"file": (io.BytesIO(b"Foo,Bar\n1,2"), "contacts.csv")},
            content_type="multipart/form-data"
        )
        
        assert response.status_code == 400
        assert json.loads(response.data)["error_type"] == "FormatError"
    
    def test_export(self, client, pipeline):
        pipeline.store.add(ContactRecord(name="Jane Doe"), "img", "eng")
        
        response = client.get("/api/export")
        
        assert response.status_code == 200
        assert response.mimetype == "text/csv"
        assert "attachment" in response.headers["Content-Disposition"]
        assert response.data.decode("utf-8").startswith("Name,Organization,Position")
    
    def test_export_empty(self, client, pipeline):
        assert client.get("/api/export").status_code == 400
    
    def test_vcard_download(self, client, pipeline):
        item = pipeline.store.add(ContactRecord(name="Jane Doe"), "img", "eng")
        
        response = client.get(f"/api/history/{item.id}/vcard")
        
        assert response.status_code == 200
        assert b"BEGIN:VCARD" in response.data
        assert ".vcf" in response.headers["Content-Disposition"]
        
        assert client.get("/api/history/missing/vcard").status_code == 404
