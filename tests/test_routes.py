"""Tests for the HTTP API.

Network fetches, the headless browser and the model are replaced with
lightweight mocks, and previews are stored in a temporary directory.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import anthropic
import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.models.capture import Capture
from app.models.detection import Detection
from app.models.preview_record import PreviewRecord
from app.routers import capture, generate, preview
from app.services.preview_store import PreviewStore, get_preview_store

client = TestClient(app)

_PAGE_HTML = """
<html>
<head><title>Smile Dental | Dubai</title></head>
<body>
  <h1>Smile Dental</h1>
  <p>Call <a href="tel:+97141234567">+971 4 123 4567</a></p>
</body>
</html>
"""

_CAPTURE = Capture(
    page_url="https://smile.example.ae/",
    page_title="Smile Dental | Dubai",
    business_name="Smile Dental",
    contact_phones=["+97141234567"],
    color_palette=["#0f766e", "#f97360"],
)

_BRAND_DATA = {
    "BRAND_NAME": "Smile Dental",
    "BRAND_PHONE": "+971 4 123 4567",
    "HERO_HEADING": "Brighter smiles in Dubai",
}


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Clear the slowapi in-memory counters before every test."""
    for limiter in (capture.limiter, generate.limiter, preview.limiter):
        limiter._storage.reset()
    yield


@pytest.fixture
def store(tmp_path):
    preview_store = PreviewStore(str(tmp_path))
    app.dependency_overrides[get_preview_store] = lambda: preview_store
    yield preview_store
    app.dependency_overrides.pop(get_preview_store, None)


def _stored(store, preview_id="p-1", expires_in=timedelta(days=7)) -> None:
    now = datetime.now(timezone.utc)
    store.save(
        PreviewRecord(
            preview_id=preview_id,
            template_slug="other-clarity",
            prospect_name="Smile Dental",
            created_at=now,
            expires_at=now + expires_in,
        ),
        "<html><body><h1>Stored preview</h1></body></html>",
    )


class TestHealth:
    def test_root(self):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json() == {"message": "Hello from Prospect Preview"}


class TestCapture:
    def test_http_mode(self):
        with patch("app.routers.capture.fetch_url", new=AsyncMock(return_value=_PAGE_HTML)):
            response = client.post(
                "/capture", json={"url": "https://smile.example.ae/", "render_mode": "http"}
            )
        assert response.status_code == 200
        data = response.json()
        assert data["page_url"] == "https://smile.example.ae/"
        assert data["business_name"] == "Smile Dental"
        assert data["contact_phones"] == ["+97141234567"]

    def test_supplied_html_is_not_fetched(self):
        with (
            patch("app.routers.capture.fetch_url", new=AsyncMock(side_effect=AssertionError("no fetch"))),
            patch(
                "app.routers.capture.fetch_url_with_browser",
                new=AsyncMock(side_effect=AssertionError("no browser")),
            ),
        ):
            response = client.post(
                "/capture", json={"url": "https://smile.example.ae/", "html": _PAGE_HTML}
            )
        assert response.status_code == 200
        assert response.json()["h1_text"] == "Smile Dental"

    def test_auto_falls_back_to_http(self):
        with (
            patch(
                "app.routers.capture.fetch_url_with_browser",
                new=AsyncMock(side_effect=RuntimeError("browser crashed")),
            ),
            patch("app.routers.capture.fetch_url", new=AsyncMock(return_value=_PAGE_HTML)) as http,
        ):
            response = client.post("/capture", json={"url": "https://smile.example.ae/"})
        assert response.status_code == 200
        http.assert_awaited_once()

    def test_blocked_url(self):
        with patch(
            "app.routers.capture.fetch_url_with_browser",
            new=AsyncMock(side_effect=ValueError("private address")),
        ):
            response = client.post("/capture", json={"url": "http://127.0.0.1/"})
        assert response.status_code == 400

    def test_browser_mode_error(self):
        with patch(
            "app.routers.capture.fetch_url_with_browser",
            new=AsyncMock(side_effect=RuntimeError("crashed")),
        ):
            response = client.post(
                "/capture", json={"url": "https://smile.example.ae/", "render_mode": "browser"}
            )
        assert response.status_code == 502

    def test_invalid_url(self):
        response = client.post("/capture", json={"url": "not a url"})
        assert response.status_code == 422

    def test_rate_limit(self):
        with patch("app.routers.capture.fetch_url", new=AsyncMock(return_value=_PAGE_HTML)):
            statuses = [
                client.post(
                    "/capture", json={"url": "https://smile.example.ae/", "render_mode": "http"}
                ).status_code
                for _ in range(11)
            ]
        assert statuses[:10] == [200] * 10
        assert statuses[10] == 429


class TestGenerate:
    def test_generate_and_serve(self, store):
        detection = Detection(
            vertical="other", template_slug="other-clarity", reasoning="Clean.", confidence="medium"
        )
        with (
            patch("app.routers.generate.detect_template", new=AsyncMock(return_value=detection)),
            patch(
                "app.routers.generate.extract_injection_data",
                new=AsyncMock(return_value=_BRAND_DATA),
            ),
        ):
            response = client.post("/generate", json={"capture": _CAPTURE.model_dump()})

        assert response.status_code == 200
        data = response.json()
        assert data["template_used"] == "other-clarity"
        assert data["confidence"] == "medium"
        assert data["preview_url"].endswith(f"/p/{data['preview_id']}")
        assert data["injected_data"] == _BRAND_DATA
        assert "BRAND_TAGLINE" in data["unfilled_tokens"]
        assert "BRAND_NAME" not in data["unfilled_tokens"]

        record = store.load_record(data["preview_id"])
        assert record.prospect_name == "Smile Dental"
        assert record.page_url == "https://smile.example.ae/"

        page = client.get(f"/p/{data['preview_id']}")
        assert page.status_code == 200
        assert page.headers["cache-control"] == "no-store"
        assert "Brighter smiles in Dubai" in page.text
        assert "--navy:#0f766e" in page.text
        assert "--sun:#f97360" in page.text
        assert "ps-preview-banner" in page.text
        assert store.load_record(data["preview_id"]).view_count == 0

    def test_explicit_template_skips_detection(self, store):
        with (
            patch(
                "app.routers.generate.detect_template",
                new=AsyncMock(side_effect=AssertionError("detection must not run")),
            ),
            patch(
                "app.routers.generate.extract_injection_data",
                new=AsyncMock(return_value={"CLINIC_NAME": "Smile Dental"}),
            ) as extraction,
        ):
            response = client.post(
                "/generate",
                json={
                    "capture": _CAPTURE.model_dump(),
                    "template_slug": "medical-gp",
                    "vertical": "medical",
                    "prospect_name": "Smile Co",
                },
            )
        assert response.status_code == 200
        assert response.json()["template_used"] == "medical-gp"
        assert response.json()["vertical"] == "medical"
        assert extraction.call_args.kwargs["prospect_name"] == "Smile Co"

    def test_model_unavailable_still_generates(self, store):
        with (
            patch(
                "app.services.detector.call_model",
                new=AsyncMock(side_effect=anthropic.AnthropicError("no credentials")),
            ),
            patch("app.services.enrichment.call_model", new=AsyncMock(return_value="not json")),
        ):
            response = client.post("/generate", json={"capture": _CAPTURE.model_dump()})
        assert response.status_code == 200
        data = response.json()
        assert data["template_used"] == "other-clarity"
        assert data["confidence"] == "low"
        assert data["injected_data"]["BRAND_NAME"] == "Smile Dental"
        assert data["injected_data"]["BRAND_PHONE"] == "+97141234567"

    def test_unknown_template(self, store):
        with patch(
            "app.routers.generate.extract_injection_data", new=AsyncMock(return_value=_BRAND_DATA)
        ):
            response = client.post(
                "/generate", json={"capture": _CAPTURE.model_dump(), "template_slug": "nope"}
            )
        assert response.status_code == 404
        assert response.json() == {"detail": "Template not found: nope.html"}


class TestServePreview:
    def test_unknown_preview(self, store):
        response = client.get("/p/does-not-exist")
        assert response.status_code == 404
        assert "Preview Not Found" in response.text

    def test_expired_preview(self, store):
        _stored(store, expires_in=timedelta(days=-1))
        response = client.get("/p/p-1")
        assert response.status_code == 410
        assert "Expired" in response.text

    def test_live_preview(self, store):
        _stored(store)
        response = client.get("/p/p-1")
        assert response.status_code == 200
        assert "Stored preview" in response.text


class TestTrack:
    def test_view_and_cta(self, store):
        _stored(store)
        assert client.post("/track", json={"preview_id": "p-1", "event": "view"}).json() == {"ok": True}
        client.post("/track", json={"preview_id": "p-1", "event": "cta_click", "ts": 1760000000000})
        record = store.load_record("p-1")
        assert record.view_count == 1
        assert record.cta_clicked is True

    def test_unknown_preview_is_ok(self, store):
        response = client.post("/track", json={"preview_id": "missing", "event": "view"})
        assert response.status_code == 200
        assert response.json() == {"ok": True}

    def test_unknown_event_is_ignored(self, store):
        _stored(store)
        assert client.post("/track", json={"preview_id": "p-1", "event": "hover"}).json() == {"ok": True}
        assert store.load_record("p-1").view_count == 0


class TestPreviewRender:
    def test_render(self):
        response = client.post(
            "/preview",
            json={
                "template_filename": "other-clarity.html",
                "injected_data": _BRAND_DATA,
                "prospect_name": "Smile Dental",
                "color_palette": ["#0f766e"],
                "preview_id": "abcdef1234",
            },
        )
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "Brighter smiles in Dubai" in response.text
        assert "ID: abcdef12" in response.text

    def test_missing_template(self):
        response = client.post(
            "/preview",
            json={"template_filename": "nope.html", "prospect_name": "Smile Dental"},
        )
        assert response.status_code == 404


class TestTemplates:
    def test_list(self):
        response = client.get("/templates")
        assert response.status_code == 200
        assert "other-clarity.html" in response.json()["templates"]

    def test_variables(self):
        response = client.get("/templates/medical-gp.html/variables")
        assert response.status_code == 200
        variables = response.json()["variables"]
        assert variables == sorted(variables)
        assert "CLINIC_NAME" in variables

    def test_unknown_template(self):
        assert client.get("/templates/nope.html/variables").status_code == 404
