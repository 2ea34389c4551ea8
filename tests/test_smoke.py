import json

import pytest
from fastapi.testclient import TestClient

from csvmap.errors import SubmissionError
from csvmap.main import app, get_submitter

client = TestClient(app)


class FakeSubmitter:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    async def submit(self, upload, mapping):
        await upload.seek(0)
        self.calls.append((upload.filename, await upload.read(), mapping))
        if self.fail:
            raise SubmissionError("Submission failed: 503", status_code=503)
        return {"imported": 2}


@pytest.fixture
def submitter():
    fake = FakeSubmitter()
    app.dependency_overrides[get_submitter] = lambda: fake
    yield fake
    app.dependency_overrides.clear()


def test_health():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_headers_semicolon_with_bom_and_crlf():
    raw = "\ufeffFirst;Last;\"Ticket; No\"\r\nAda;Lovelace;1\r\n".encode("utf-8")

    files = {"file": ("participants.csv", raw, "text/csv")}
    r = client.post("/headers", files=files)
    assert r.status_code == 200

    data = r.json()
    assert data["filename"] == "participants.csv"
    assert data["delimiter"] == ";"
    assert data["headers"] == ["First", "Last", "Ticket; No"]
    assert data["columns_detected"] is True


def test_headers_empty_file_detects_no_columns():
    files = {"file": ("empty.csv", b"", "text/csv")}
    r = client.post("/headers", files=files)
    assert r.status_code == 200
    assert r.json()["headers"] == [""]
    assert r.json()["columns_detected"] is False


def test_headers_rejects_non_csv():
    files = {"file": ("notes.txt", b"a,b\n", "text/plain")}
    r = client.post("/headers", files=files)
    assert r.status_code == 422


def test_import_full_mapping(submitter):
    raw = b"Name,Ticket\nAda Lovelace,1\nAlan Turing,2\n"
    mapping = {"type": "full", "nameColumn": "Name", "ticketNumberColumn": "Ticket"}

    files = {"file": ("participants.csv", raw, "text/csv")}
    r = client.post("/imports", files=files, data={"mapping": json.dumps(mapping)})
    assert r.status_code == 200

    data = r.json()
    assert data["mapping"] == mapping
    assert data["result"] == {"imported": 2}

    # the whole file reaches the collaborator, not just the header line
    assert len(submitter.calls) == 1
    filename, content, submitted = submitter.calls[0]
    assert filename == "participants.csv"
    assert content == raw
    assert submitted.name_column == "Name"


def test_import_rejects_reused_column(submitter):
    raw = b"First\tLast\tTicket\nAda\tLovelace\t1\n"
    mapping = {
        "type": "split",
        "firstNameColumn": "First",
        "lastNameColumn": "First",
        "ticketNumberColumn": "Ticket",
    }

    files = {"file": ("participants.csv", raw, "text/csv")}
    r = client.post("/imports", files=files, data={"mapping": json.dumps(mapping)})
    assert r.status_code == 422
    assert r.json()["detail"]["errors"] == ["Each field must use a different column."]
    assert submitter.calls == []


def test_import_rejects_unknown_column(submitter):
    mapping = {"type": "full", "nameColumn": "Nom", "ticketNumberColumn": "Ticket"}

    files = {"file": ("participants.csv", b"Name,Ticket\n", "text/csv")}
    r = client.post("/imports", files=files, data={"mapping": json.dumps(mapping)})
    assert r.status_code == 422
    assert r.json()["detail"]["errors"] == ["'Nom' is not a detected column."]
    assert submitter.calls == []


def test_import_rejects_malformed_mapping(submitter):
    files = {"file": ("participants.csv", b"Name,Ticket\n", "text/csv")}
    r = client.post("/imports", files=files, data={"mapping": '{"type": "full", "nameColumn": ""}'})
    assert r.status_code == 422
    assert submitter.calls == []

    r = client.post("/imports", files=files, data={"mapping": "not json"})
    assert r.status_code == 422


def test_import_reports_submission_failure():
    fake = FakeSubmitter(fail=True)
    app.dependency_overrides[get_submitter] = lambda: fake
    try:
        mapping = {"type": "full", "nameColumn": "Name", "ticketNumberColumn": "Ticket"}
        files = {"file": ("participants.csv", b"Name,Ticket\n", "text/csv")}
        r = client.post("/imports", files=files, data={"mapping": json.dumps(mapping)})
    finally:
        app.dependency_overrides.clear()

    assert r.status_code == 502
    assert r.json()["detail"] == "Submission failed: 503"
    assert len(fake.calls) == 1
