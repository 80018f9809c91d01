import io
import json

import requests

from models.audit_log import AuditLog
from models.contact_message import ContactMessage
from models.fraud_case import FraudCase

REPORT = {
    "fullName": "Dana Reyes",
    "contactEmail": "Dana@Example.com",
    "contactPhone": "+1 555 123 4567",
    "scamType": "crypto-investment",
    "amount": "2500",
    "currency": "USD",
    "timeline": "March 2026",
    "description": "Fake trading platform kept my deposit.",
    "transactionHashes": ["0xabc123"],
    "bankReferences": [],
    "filesCount": 2,
}

CONTACT = {"name": "Sam", "email": "sam@example.com", "subject": "Question", "message": "How long does review take?"}


def test_fraud_report_relayed_and_stored(client, relay) -> None:
    resp = client.post("/api/submit/fraud-report", json=REPORT)

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["success"] is True
    assert body["filesProcessed"] == 2
    assert body["caseId"].startswith("CSRU-")

    sent = relay.calls[0]["data"]
    assert relay.calls[0]["timeout"] == 10
    assert sent["access_key"] == "test-relay-key"
    assert sent["form_name"] == "fraud-report"
    assert sent["caseId"] == body["caseId"]
    assert json.loads(sent["transactionHashes"]) == ["0xabc123"]

    case = FraudCase.query.filter_by(case_id=body["caseId"]).one()
    assert case.victim_email == "dana@example.com"
    assert case.status == "Relayed"
    assert case.files_count == 2
    assert AuditLog.query.filter_by(action="FRAUD_REPORT_RELAYED", case_id=case.case_id).count() == 1


def test_fraud_report_validation_errors(client, relay) -> None:
    resp = client.post("/api/submit/fraud-report", json=dict(REPORT, amount="-1", transactionHashes=[]))

    assert resp.status_code == 400
    body = resp.get_json()
    assert body["code"] == "VALIDATION_ERROR"
    assert body["errors"] == [
        "Valid amount is required",
        "At least one transaction hash or bank reference is required",
    ]
    assert body["message"] == "Valid amount is required"
    assert relay.calls == []


def test_fraud_report_requires_json(client, relay) -> None:
    resp = client.post("/api/submit/fraud-report", data="fullName=x")
    assert resp.status_code == 400

    resp = client.post("/api/submit/fraud-report", data="{broken", content_type="application/json")
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "INVALID_JSON"


def test_fraud_report_without_relay_key(app, client, relay) -> None:
    app.config["WEB3FORMS_API_KEY"] = "  "
    resp = client.post("/api/submit/fraud-report", json=REPORT)

    assert resp.status_code == 503
    assert resp.get_json()["code"] == "CONFIG_ERROR"


def test_fraud_report_rate_limited(client, relay) -> None:
    for _ in range(5):
        assert client.post("/api/submit/fraud-report", json=REPORT).status_code == 201

    resp = client.post("/api/submit/fraud-report", json=REPORT)
    assert resp.status_code == 429
    assert resp.get_json()["message"] == "Too many requests. Please try again later."


def test_rate_limit_uses_first_forwarded_hop(client, relay) -> None:
    for _ in range(5):
        client.post("/api/submit/fraud-report", json=REPORT, headers={"X-Forwarded-For": "9.9.9.9, 10.0.0.1"})

    blocked = client.post("/api/submit/fraud-report", json=REPORT, headers={"X-Forwarded-For": "9.9.9.9"})
    other = client.post("/api/submit/fraud-report", json=REPORT, headers={"X-Forwarded-For": "8.8.8.8"})
    assert blocked.status_code == 429
    assert other.status_code == 201


def test_relay_unreachable(client, relay) -> None:
    relay.error = requests.ConnectionError("down")
    resp = client.post("/api/submit/fraud-report", json=REPORT)

    assert resp.status_code == 503
    assert resp.get_json()["code"] == "SUBMISSION_SERVICE_ERROR"
    assert FraudCase.query.count() == 0


def test_relay_status_specific_messages(client, relay) -> None:
    relay.respond(status_code=403)
    resp = client.post("/api/submit/fraud-report", json=REPORT)
    assert resp.status_code == 503
    assert resp.get_json()["message"] == "Server authentication failed. Please contact support."

    relay.respond(status_code=502)
    resp = client.post("/api/submit/fraud-report", json=REPORT)
    assert "temporarily unavailable" in resp.get_json()["message"]


def test_relay_bad_reply_and_rejection(client, relay) -> None:
    relay.respond(json_error=True)
    assert client.post("/api/submit/fraud-report", json=REPORT).status_code == 500

    relay.respond(payload={"success": False, "message": "spam detected"})
    resp = client.post("/api/submit/fraud-report", json=REPORT)
    assert resp.status_code == 400
    assert "spam" not in resp.get_json()["message"]


def test_contact_relayed_and_stored(client, relay) -> None:
    resp = client.post("/api/submit/contact", json=CONTACT)

    assert resp.status_code == 201
    assert relay.calls[0]["data"]["form_name"] == "contact"
    assert "phone" not in relay.calls[0]["data"]
    assert ContactMessage.query.one().subject == "Question"


def test_contact_validation_and_budget(client, relay) -> None:
    resp = client.post("/api/submit/contact", json=dict(CONTACT, email="nope"))
    assert resp.status_code == 400
    assert resp.get_json()["errors"] == ["Valid email address is required"]

    for _ in range(9):
        assert client.post("/api/submit/contact", json=CONTACT).status_code == 201
    assert client.post("/api/submit/contact", json=CONTACT).status_code == 429


def test_contact_and_fraud_budgets_are_separate(client, relay) -> None:
    for _ in range(5):
        client.post("/api/submit/fraud-report", json=REPORT)
    assert client.post("/api/submit/fraud-report", json=REPORT).status_code == 429
    assert client.post("/api/submit/contact", json=CONTACT).status_code == 201


def test_local_report_stored_and_confirmed(client, sent_emails) -> None:
    resp = client.post("/api/report", json=dict(REPORT, fileNames=["receipt.png"], fileCount=1))

    assert resp.status_code == 201
    case_id = resp.get_json()["caseId"]
    case = FraudCase.query.filter_by(case_id=case_id).one()
    assert case.status == "Received"
    assert case.file_names == ["receipt.png"]
    assert sent_emails[0]["to"] == "dana@example.com"
    assert case_id in sent_emails[0]["body"]


def _case_form(**overrides):
    form = {
        "caseId": "CSRU-18BCFE56800-0123456789ABCDEF",
        "fullName": "Dana Reyes",
        "contactEmail": "dana@example.com",
        "scamType": "romance",
        "amount": "900",
        "currency": "EUR",
        "timeline": "Last week",
        "description": "Sent money to a fake partner.",
        "bankReferences": json.dumps(["IBAN-REF-1"]),
    }
    form.update(overrides)
    return form


def test_submit_case_with_evidence(client) -> None:
    form = _case_form()
    form["evidence"] = [
        (io.BytesIO(b"\x89PNG fake"), "screenshot.png", "image/png"),
        (io.BytesIO(b"%PDF-1.7"), "statement.pdf", "application/pdf"),
    ]
    resp = client.post("/api/submit-case", data=form, content_type="multipart/form-data")

    assert resp.status_code == 200
    assert resp.get_json()["caseId"] == "CSRU-18BCFE56800-0123456789ABCDEF"
    case = FraudCase.query.one()
    assert case.status == "Intake"
    assert case.bank_references == ["IBAN-REF-1"]
    assert case.file_names == ["screenshot.png", "statement.pdf"]


def test_submit_case_rejects_bad_evidence(app, client) -> None:
    app.config["MAX_EVIDENCE_MB"] = 1
    form = _case_form()
    form["evidence"] = [
        (io.BytesIO(b"x" * (1024 * 1024 + 1)), "huge.png", "image/png"),
        (io.BytesIO(b"PK"), "archive.zip", "application/zip"),
    ]
    resp = client.post("/api/submit-case", data=form, content_type="multipart/form-data")

    assert resp.status_code == 400
    errors = resp.get_json()["errors"]
    assert any("huge.png" in e and "1.00 MB" in e for e in errors)
    assert any("archive.zip" in e and "not allowed" in e for e in errors)
    assert FraudCase.query.count() == 0


def test_submit_case_rejects_malformed_lists(client) -> None:
    deeply_nested = client.post("/api/submit-case", data=_case_form(transactionHashes="[" * 100_000))
    assert deeply_nested.status_code == 400
    assert "transactionHashes must be a list" in deeply_nested.get_json()["errors"]

    not_json = client.post("/api/submit-case", data=_case_form(bankReferences="[IBAN-REF-1"))
    assert not_json.status_code == 400
    assert "bankReferences must be a list" in not_json.get_json()["errors"]
    assert FraudCase.query.count() == 0


def test_submit_case_generates_id_and_rejects_duplicates(client) -> None:
    resp = client.post("/api/submit-case", data=_case_form(caseId=""))
    assert resp.status_code == 200
    assert resp.get_json()["caseId"].startswith("CSRU-")

    first = client.post("/api/submit-case", data=_case_form())
    second = client.post("/api/submit-case", data=_case_form())
    assert first.status_code == 200
    assert second.status_code == 409


def test_submit_case_forwards_when_configured(app, client, relay) -> None:
    app.config["FORMSPREE_URL"] = "https://formspree.example/f/abc"
    resp = client.post("/api/submit-case", data=_case_form())

    assert resp.status_code == 200
    assert relay.calls[0]["url"] == "https://formspree.example/f/abc"
    assert relay.calls[0]["data"]["caseId"] == "CSRU-18BCFE56800-0123456789ABCDEF"


def test_submit_case_forward_failure_does_not_fail_submission(app, client, relay) -> None:
    app.config["FORMSPREE_URL"] = "https://formspree.example/f/abc"
    relay.error = requests.Timeout("slow")

    assert client.post("/api/submit-case", data=_case_form()).status_code == 200
    assert AuditLog.query.filter_by(action="CASE_FORWARD_FAIL").count() == 1
