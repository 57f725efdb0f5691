"""Tests for the resume preview endpoint."""

from unittest.mock import AsyncMock, Mock

import pytest

from api.dependencies import get_resume_preview_converter
from api.main import app
from core.exceptions import PreviewConversionError
from core.parsers.resume_preview import ResumePreviewConverter

PREVIEW = "/api/v1/resumes/preview"


@pytest.fixture
def converter(api):
    """Replace the external converter for the duration of a test."""
    fake = Mock(spec=ResumePreviewConverter)
    fake.convert_upload = AsyncMock(return_value=b"%PDF-1.7 preview")
    app.dependency_overrides[get_resume_preview_converter] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_resume_preview_converter, None)


class TestPreviewResume:
    def test_returns_pdf(self, api, converter):
        response = api.client.post(
            PREVIEW,
            params={"filename": "jane_doe.docx"},
            content=b"PK\x03\x04 fake docx",
            headers=api.auth(api.people.recruiter),
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content == b"%PDF-1.7 preview"
        converter.convert_upload.assert_awaited_once_with("jane_doe.docx", b"PK\x03\x04 fake docx")

    def test_needs_candidate_view_permission(self, api, converter):
        response = api.client.post(
            PREVIEW,
            params={"filename": "jane_doe.docx"},
            content=b"data",
            headers=api.auth(api.people.outsider),
        )

        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Missing permission: Candidates.View"
        converter.convert_upload.assert_not_awaited()

    def test_anonymous_is_forbidden(self, api, converter):
        response = api.client.post(PREVIEW, params={"filename": "cv.docx"}, content=b"data")

        assert response.status_code == 403
        converter.convert_upload.assert_not_awaited()

    def test_conversion_failure(self, api, converter):
        converter.convert_upload.side_effect = PreviewConversionError("Conversion timed out after 60 seconds")

        response = api.client.post(
            PREVIEW,
            params={"filename": "cv.docx"},
            content=b"data",
            headers=api.auth(api.people.recruiter),
        )

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "PREVIEW_FAILED"

    def test_unsupported_file_type(self, api):
        response = api.client.post(
            PREVIEW,
            params={"filename": "payload.exe"},
            content=b"MZ",
            headers=api.auth(api.people.recruiter),
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "UNSUPPORTED_DOCUMENT"
