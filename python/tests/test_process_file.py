"""Tests for POST /process-file.

Tests cover:
- Text files are extracted, cached, and previewed
- Long text is previewed with an ellipsis and cached at the cap
- Unknown file records and missing objects return 500 with success: false
"""

from uuid import uuid4

from parley.db.models import FileUpload
from parley.services.file_processing import build_preview
from tests.factories import create_test_file, create_test_project


def _body(file: FileUpload, **overrides) -> dict:
    body = {
        "fileId": str(file.id),
        "filePath": file.file_path,
        "fileName": file.filename,
        "fileType": file.file_type,
    }
    body.update(overrides)
    return body


class TestBuildPreview:
    def test_short_text_unchanged(self):
        assert build_preview("hello") == "hello"

    def test_exactly_at_limit_has_no_ellipsis(self):
        assert build_preview("x" * 200) == "x" * 200

    def test_long_text_cut_with_ellipsis(self):
        assert build_preview("x" * 201) == "x" * 200 + "..."


class TestProcessFileRoute:
    def test_text_file(self, client, db_session, storage):
        project = create_test_project(db_session)
        file = create_test_file(db_session, project, filename="notes.md", file_type="text/markdown")
        storage.put_object(file.file_path, b"# Notes\nShip it.")

        response = client.post("/process-file", json=_body(file))

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "File processed successfully",
            "contentLength": 16,
            "contentPreview": "# Notes\nShip it.",
        }
        db_session.expire_all()
        assert db_session.get(FileUpload, file.id).extracted_text == "# Notes\nShip it."

    def test_long_file_reports_full_length(self, client, db_session, storage):
        project = create_test_project(db_session)
        file = create_test_file(db_session, project, filename="big.txt")
        storage.put_object(file.file_path, b"a" * 10_000)

        response = client.post("/process-file", json=_body(file))

        data = response.json()
        assert data["contentLength"] == 10_000
        assert data["contentPreview"] == "a" * 200 + "..."
        db_session.expire_all()
        assert len(db_session.get(FileUpload, file.id).extracted_text) == 8000

    def test_image_gets_placeholder(self, client, db_session, storage):
        project = create_test_project(db_session)
        file = create_test_file(db_session, project, filename="chart.png", file_type="image/png")
        storage.put_object(file.file_path, b"\x89PNG" + b"\x00" * 96)

        response = client.post("/process-file", json=_body(file))

        assert response.status_code == 200
        assert response.json()["contentPreview"].startswith(
            "[Image File: chart.png, Type: image/png, Size: 100 bytes]"
        )

    def test_unknown_file_record(self, client, db_session):
        project = create_test_project(db_session)
        file = create_test_file(db_session, project)

        response = client.post("/process-file", json=_body(file, fileId=str(uuid4())))

        assert response.status_code == 500
        data = response.json()
        assert data["success"] is False
        assert data["code"] == "E_FILE_NOT_FOUND"

    def test_missing_object(self, client, db_session):
        project = create_test_project(db_session)
        file = create_test_file(db_session, project)

        response = client.post("/process-file", json=_body(file))

        assert response.status_code == 500
        assert response.json()["code"] == "E_STORAGE_MISSING"
        db_session.expire_all()
        assert db_session.get(FileUpload, file.id).extracted_text is None

    def test_missing_path(self, client, db_session):
        project = create_test_project(db_session)
        file = create_test_file(db_session, project)
        body = _body(file)
        del body["filePath"]

        response = client.post("/process-file", json=body)

        assert response.status_code == 500
        assert response.json()["code"] == "E_INVALID_REQUEST"
