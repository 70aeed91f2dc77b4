"""
Tests for the HTTP interface.

Coverage matrix:

  /health        → static status
  /scan          docx upload                       → DocumentScanResult JSON
                 unsupported extension / empty     → 400
                 upload above size limit           → 413
                 corrupt document                  → 422
                 overrides (filter, disable)       → applied / 400
  /scan/sarif    pdf upload                        → SARIF 2.1.0 log
  /scan/batch    several uploads                   → BatchScanReport JSON, skips listed
                 ?format=markdown                  → Markdown report
                 overrides keyed by type           → applied / 400
                 one upload above size limit       → 413
"""

import json

import pytest
from fastapi.testclient import TestClient

from docscan.app.main import app
from docscan.tests.fixtures.office_factory import accessible_docx, docx_bytes, heading
from docscan.tests.fixtures.pdf_factory import image_only_pdf

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


@pytest.fixture
def client(monkeypatch):
    for name in (
        "DOCSCAN_MAX_UPLOAD_SIZE_MB",
        "DOCSCAN_RULE_CONFIG_DIR",
        "DOCSCAN_EXPAND_PDF_STREAMS",
    ):
        monkeypatch.delenv(name, raising=False)
    with TestClient(app) as test_client:
        yield test_client


def _upload(filename, data, media_type=DOCX_MEDIA_TYPE):
    return {"document": (filename, data, media_type)}


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "docscan"}


# ---------------------------------------------------------------------------
# /scan
# ---------------------------------------------------------------------------

def test_scan_accessible_docx(client):
    response = client.post("/scan", files=_upload("report.docx", accessible_docx()))

    assert response.status_code == 200
    body = response.json()
    assert body["path"] == "report.docx"
    assert body["document_type"] == "docx"
    assert body["findings"] == []
    assert body["score"] == {"score": 100, "grade": "A"}
    assert body["pdf_facts"] is None


def test_scan_reports_findings(client):
    data = docx_bytes(heading(1, "A"), heading(3, "B"), title=None)
    response = client.post("/scan", files=_upload("draft.docx", data))

    body = response.json()
    assert [f["rule_id"] for f in body["findings"]] == ["DOCX-E004", "DOCX-W001"]
    assert body["score"]["score"] == 87


def test_unsupported_extension_is_rejected(client):
    response = client.post("/scan", files=_upload("notes.txt", b"hello", "text/plain"))
    assert response.status_code == 400


def test_empty_upload_is_rejected(client):
    response = client.post("/scan", files=_upload("empty.docx", b""))

    assert response.status_code == 400
    assert response.json()["detail"] == "Uploaded document is empty"


def test_upload_above_limit_is_rejected(monkeypatch):
    monkeypatch.setenv("DOCSCAN_MAX_UPLOAD_SIZE_MB", "1")

    with TestClient(app) as client:
        response = client.post(
            "/scan",
            files=_upload("huge.docx", b"\0" * (1024 * 1024 + 1)),
        )

    assert response.status_code == 413


def test_corrupt_document_is_unprocessable(client):
    response = client.post(
        "/scan",
        files=_upload("fake.pdf", b"GIF89a not a pdf", "application/pdf"),
    )

    assert response.status_code == 422
    assert "%PDF-" in response.json()["detail"]


# ---------------------------------------------------------------------------
# Overrides
# ---------------------------------------------------------------------------

def test_overrides_filter_severity(client):
    data = docx_bytes(heading(1, "A"), heading(3, "B"), title=None)
    response = client.post(
        "/scan",
        files=_upload("draft.docx", data),
        data={"overrides": json.dumps({"severityFilter": ["warning"]})},
    )

    assert response.status_code == 200
    assert [f["rule_id"] for f in response.json()["findings"]] == ["DOCX-W001"]


def test_overrides_can_disable_the_document_type(client):
    response = client.post(
        "/scan",
        files=_upload("report.docx", accessible_docx()),
        data={"overrides": json.dumps({"enabled": False})},
    )

    assert response.status_code == 400
    assert "disabled" in response.json()["detail"]


@pytest.mark.parametrize(
    "overrides",
    ["{not json", "[1, 2]", json.dumps({"severityFilter": ["fatal"]})],
)
def test_invalid_overrides_are_rejected(client, overrides):
    response = client.post(
        "/scan",
        files=_upload("report.docx", accessible_docx()),
        data={"overrides": overrides},
    )
    assert response.status_code == 400


# ---------------------------------------------------------------------------
# /scan/sarif
# ---------------------------------------------------------------------------

def test_sarif_endpoint(client):
    response = client.post(
        "/scan/sarif",
        files=_upload("scan.pdf", image_only_pdf(), "application/pdf"),
    )

    assert response.status_code == 200
    log = response.json()
    assert log["version"] == "2.1.0"

    results = log["runs"][0]["results"]
    assert "PDFQ.REPO.NO_SCANNED_ONLY" in [r["ruleId"] for r in results]
    uris = {
        r["locations"][0]["physicalLocation"]["artifactLocation"]["uri"]
        for r in results
    }
    assert uris == {"scan.pdf"}


# ---------------------------------------------------------------------------
# /scan/batch
# ---------------------------------------------------------------------------

def _batch(*uploads):
    return [("documents", upload) for upload in uploads]


def test_batch_scan_aggregates_and_skips(client):
    response = client.post(
        "/scan/batch",
        files=_batch(
            ("report.docx", accessible_docx(), DOCX_MEDIA_TYPE),
            ("fake.pdf", b"GIF89a not a pdf", "application/pdf"),
            ("notes.txt", b"hello", "text/plain"),
        ),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["root"] is None
    assert [d["path"] for d in body["documents"]] == ["report.docx"]
    assert [s["path"] for s in body["skipped"]] == ["fake.pdf", "notes.txt"]
    assert body["skipped"][1]["reason"] == "unsupported document type"

    summary = body["summary"]
    assert summary["documents_scanned"] == 1
    assert summary["documents_skipped"] == 2
    assert summary["average_score"] == 100
    assert summary["grade"] == "A"


def test_batch_scan_as_markdown(client):
    data = docx_bytes(heading(1, "A"), heading(3, "B"), title=None)
    response = client.post(
        "/scan/batch?format=markdown",
        files=_batch(("draft.docx", data, DOCX_MEDIA_TYPE)),
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/markdown")
    assert response.text.startswith("# Accessibility Scan Report")
    assert "draft.docx" in response.text
    assert "DOCX-W001" in response.text


def test_batch_overrides_are_keyed_by_type(client):
    data = docx_bytes(heading(1, "A"), heading(3, "B"), title=None)
    response = client.post(
        "/scan/batch",
        files=_batch(("draft.docx", data, DOCX_MEDIA_TYPE)),
        data={"overrides": json.dumps({"docx": {"disabledRules": ["DOCX-E004"]}})},
    )

    assert response.status_code == 200
    findings = response.json()["documents"][0]["findings"]
    assert [f["rule_id"] for f in findings] == ["DOCX-W001"]


def test_batch_skips_disabled_types_silently(client):
    response = client.post(
        "/scan/batch",
        files=_batch(
            ("report.docx", accessible_docx(), DOCX_MEDIA_TYPE),
            ("scan.pdf", image_only_pdf(), "application/pdf"),
        ),
        data={"overrides": json.dumps({"pdf": {"enabled": False}})},
    )

    body = response.json()
    assert [d["path"] for d in body["documents"]] == ["report.docx"]
    assert body["skipped"] == []


@pytest.mark.parametrize(
    "overrides",
    [
        "[1, 2]",
        json.dumps({"odt": {"enabled": False}}),
        json.dumps({"docx": {"severityFilter": ["fatal"]}}),
    ],
)
def test_batch_invalid_overrides_are_rejected(client, overrides):
    response = client.post(
        "/scan/batch",
        files=_batch(("report.docx", accessible_docx(), DOCX_MEDIA_TYPE)),
        data={"overrides": overrides},
    )
    assert response.status_code == 400


def test_batch_unknown_format_is_rejected(client):
    response = client.post(
        "/scan/batch?format=html",
        files=_batch(("report.docx", accessible_docx(), DOCX_MEDIA_TYPE)),
    )
    assert response.status_code == 422


def test_batch_upload_above_limit_is_rejected(monkeypatch):
    monkeypatch.setenv("DOCSCAN_MAX_UPLOAD_SIZE_MB", "1")

    with TestClient(app) as client:
        response = client.post(
            "/scan/batch",
            files=_batch(
                ("report.docx", accessible_docx(), DOCX_MEDIA_TYPE),
                ("huge.docx", b"\0" * (1024 * 1024 + 1), DOCX_MEDIA_TYPE),
            ),
        )

    assert response.status_code == 413
    assert "huge.docx" in response.json()["detail"]
