import json
import logging
import os
import re
from decimal import Decimal, InvalidOperation

from flask import Blueprint, request, jsonify, current_app
from sqlalchemy.exc import IntegrityError

from models import db
from models.contact_message import ContactMessage
from models.fraud_case import FraudCase
from security.rate_limit import client_ip, rate_config
from utils.audit import log_event
from utils.case_id import generate_case_id
from utils.emailer import send_confirmation_email
from utils.form_relay import RelayError, forward_raw, relay_configured, relay_submission
from utils.validation import (
    file_size_display,
    string_list,
    validate_contact_form,
    validate_file_size,
    validate_file_type,
    validate_fraud_report,
)

logger = logging.getLogger(__name__)

submissions_bp = Blueprint("submissions", __name__, url_prefix="/api")

_CASE_ID = re.compile(r"^[A-Z0-9][A-Z0-9-]{3,63}$")

FRAUD_FIELDS = ("fullName", "contactEmail", "contactPhone", "scamType", "amount", "currency", "timeline", "description")


def _limited(namespace: str, config_key: str) -> bool:
    limiter = current_app.extensions["rate_limiter"]
    identifier = f"{namespace}:{client_ip()}"
    return not limiter.is_allowed(identifier, rate_config(current_app.config.get(config_key)))


def _too_many():
    return jsonify(success=False, message="Too many requests. Please try again later."), 429


def _config_error():
    logger.error("Form relay is not configured (WEB3FORMS_API_KEY missing)")
    return jsonify(
        success=False,
        message="Server is not properly configured. Please try again later.",
        code="CONFIG_ERROR",
    ), 503


def _validation_error(errors):
    return jsonify(
        success=False,
        errors=errors,
        message=errors[0] if errors else "Validation failed",
        code="VALIDATION_ERROR",
    ), 400


def _text(data: dict, key: str) -> str:
    value = data.get(key)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value.strip() if isinstance(value, str) else ""


def _non_negative_int(value) -> int:
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        return 0


def _to_decimal(amount: str):
    try:
        return Decimal(amount.replace(",", ""))
    except (InvalidOperation, AttributeError):
        return None


def _read_fraud_fields(data: dict) -> dict:
    fields = {key: _text(data, key) for key in FRAUD_FIELDS}
    fields["contactEmail"] = fields["contactEmail"].lower()
    fields["transactionHashes"] = string_list(data.get("transactionHashes"))
    fields["bankReferences"] = string_list(data.get("bankReferences"))
    return fields


def _new_case(case_id: str, form_name: str, fields: dict, status: str, file_names=None, files_count=0) -> FraudCase:
    user_agent = request.headers.get("User-Agent", "")
    case = FraudCase(
        case_id=case_id,
        form_name=form_name,
        full_name=fields["fullName"] or None,
        victim_email=fields["contactEmail"],
        victim_phone=fields["contactPhone"] or None,
        scam_type=fields["scamType"],
        amount=_to_decimal(fields["amount"]),
        currency=fields["currency"] or None,
        timeline=fields["timeline"] or None,
        description=fields["description"] or None,
        transaction_hashes_json=json.dumps(fields["transactionHashes"]),
        bank_references_json=json.dumps(fields["bankReferences"]),
        file_names_json=json.dumps(file_names or []),
        files_count=files_count,
        status=status,
        ip=client_ip(),
        user_agent=user_agent[:255] if user_agent else None,
    )
    db.session.add(case)
    db.session.commit()
    return case


@submissions_bp.post("/submit/fraud-report")
def submit_fraud_report():
    if not relay_configured():
        return _config_error()

    if _limited("fraud", "FRAUD_REPORT_RATE"):
        log_event("FRAUD_REPORT_RATE_LIMIT")
        return _too_many()

    if not request.is_json:
        return jsonify(success=False, message="Invalid content type. Expected application/json."), 400

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify(
            success=False,
            message="Invalid request format. Please ensure you are sending valid JSON.",
            code="INVALID_JSON",
        ), 400

    fields = _read_fraud_fields(data)
    files_count = _non_negative_int(data.get("filesCount"))

    valid, errors = validate_fraud_report(fields)
    if not valid:
        logger.info("Fraud report rejected: %d validation errors", len(errors))
        return _validation_error(errors)

    case_id = generate_case_id()
    relay_fields = {key: fields[key] for key in FRAUD_FIELDS}
    relay_fields.update(
        caseId=case_id,
        transactionHashes=json.dumps(fields["transactionHashes"]),
        bankReferences=json.dumps(fields["bankReferences"]),
        filesCount=str(files_count),
        clientIp=client_ip(),
        userAgent=request.headers.get("User-Agent", "unknown"),
    )

    try:
        relay_submission("fraud-report", relay_fields)
    except RelayError as exc:
        log_event("FRAUD_REPORT_RELAY_FAIL", case_id=case_id, metadata={"status": exc.status_code})
        return jsonify(exc.to_response()), exc.status_code

    _new_case(case_id, "fraud-report", fields, status="Relayed", files_count=files_count)
    log_event("FRAUD_REPORT_RELAYED", case_id=case_id, metadata={"files": files_count})

    return jsonify(
        success=True,
        caseId=case_id,
        message="Fraud report received successfully. We will review your case shortly.",
        filesProcessed=files_count,
    ), 201


@submissions_bp.post("/submit/contact")
def submit_contact():
    if not relay_configured():
        return _config_error()

    if _limited("contact", "CONTACT_RATE"):
        log_event("CONTACT_RATE_LIMIT")
        return _too_many()

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify(success=False, message="Invalid request format.", code="INVALID_JSON"), 400

    fields = {key: _text(data, key) for key in ("name", "email", "subject", "message", "phone")}

    valid, errors = validate_contact_form(fields)
    if not valid:
        return _validation_error(errors)

    relay_fields = dict(fields)
    relay_fields.update(clientIp=client_ip(), userAgent=request.headers.get("User-Agent", "unknown"))
    if not relay_fields["phone"]:
        relay_fields.pop("phone")

    try:
        relay_submission("contact", relay_fields)
    except RelayError as exc:
        log_event("CONTACT_RELAY_FAIL", metadata={"status": exc.status_code})
        return jsonify(exc.to_response()), exc.status_code

    msg = ContactMessage(
        name=fields["name"],
        email=fields["email"].lower(),
        phone=fields["phone"] or None,
        subject=fields["subject"],
        message=fields["message"],
        ip=client_ip(),
    )
    db.session.add(msg)
    db.session.commit()
    log_event("CONTACT_RELAYED", metadata={"contact_id": msg.id})

    return jsonify(
        success=True,
        message="Your message has been received. We'll get back to you shortly.",
    ), 201


@submissions_bp.post("/report")
def submit_report():
    """Local intake: validates, stores and confirms without the relay."""
    if _limited("fraud", "FRAUD_REPORT_RATE"):
        log_event("FRAUD_REPORT_RATE_LIMIT")
        return _too_many()

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify(success=False, message="Invalid request format.", code="INVALID_JSON"), 400

    fields = _read_fraud_fields(data)
    valid, errors = validate_fraud_report(fields)
    if not valid:
        return _validation_error(errors)

    file_names = string_list(data.get("fileNames"))
    files_count = _non_negative_int(data.get("fileCount", len(file_names)))

    case_id = generate_case_id()
    _new_case(case_id, "fraud-report", fields, status="Received", file_names=file_names, files_count=files_count)
    log_event("FRAUD_REPORT_RECEIVED", case_id=case_id, metadata={"files": files_count})

    sent, _ = send_confirmation_email(fields["contactEmail"], case_id)
    if not sent:
        logger.warning("Confirmation email for case %s not sent", case_id)

    return jsonify(
        success=True,
        caseId=case_id,
        message="Fraud report received successfully. We will review your case shortly.",
    ), 201


def _form_list(name: str):
    """Repeated form fields or one JSON array. None when the array is malformed."""
    values = [v for v in request.form.getlist(name) if v.strip()]
    if len(values) == 1 and values[0].lstrip().startswith("["):
        try:
            parsed = json.loads(values[0])
        except (ValueError, RecursionError):
            return None
        if not isinstance(parsed, list):
            return None
        return string_list(parsed)
    return string_list(values)


def _check_evidence(files):
    errors = []
    max_mb = current_app.config.get("MAX_EVIDENCE_MB", 10)
    max_files = current_app.config.get("MAX_EVIDENCE_FILES", 10)
    allowed = current_app.config.get("ALLOWED_EVIDENCE_TYPES", [])

    if len(files) > max_files:
        errors.append(f"At most {max_files} evidence files may be attached")

    for f in files:
        stream = f.stream
        stream.seek(0, os.SEEK_END)
        size = stream.tell()
        stream.seek(0)
        if not validate_file_size(size, max_mb):
            errors.append(f"{f.filename}: file is {file_size_display(size)}, limit is {max_mb} MB")
        if not validate_file_type(f.mimetype, allowed):
            errors.append(f"{f.filename}: file type {f.mimetype or 'unknown'} is not allowed")
    return errors


@submissions_bp.post("/submit-case")
def submit_case():
    """Final wizard step: multipart form with optional evidence files."""
    if _limited("case", "FRAUD_REPORT_RATE"):
        log_event("SUBMIT_CASE_RATE_LIMIT")
        return _too_many()

    form = request.form
    fields = {key: (form.get(key) or "").strip() for key in FRAUD_FIELDS}
    fields["contactEmail"] = fields["contactEmail"].lower()
    malformed = []
    for key in ("transactionHashes", "bankReferences"):
        values = _form_list(key)
        if values is None:
            malformed.append(key)
            values = []
        fields[key] = values

    valid, errors = validate_fraud_report(fields)
    for key in malformed:
        errors.append(f"{key} must be a list")
        valid = False

    case_id = (form.get("caseId") or "").strip().upper()
    if case_id and not _CASE_ID.match(case_id):
        errors.append("Case ID is malformed")
        valid = False

    evidence = [f for f in request.files.getlist("evidence") if f and f.filename]
    evidence_errors = _check_evidence(evidence)
    if evidence_errors:
        errors.extend(evidence_errors)
        valid = False

    if not valid:
        return _validation_error(errors)

    case_id = case_id or generate_case_id()
    file_names = [f.filename for f in evidence]
    try:
        _new_case(case_id, "submit-case", fields, status="Intake", file_names=file_names, files_count=len(evidence))
    except IntegrityError:
        db.session.rollback()
        return jsonify(success=False, error="Case already submitted"), 409

    log_event("CASE_SUBMITTED", case_id=case_id, metadata={"files": len(evidence)})

    forward_url = current_app.config.get("FORMSPREE_URL")
    if forward_url:
        forward_fields = {key: fields[key] for key in FRAUD_FIELDS}
        forward_fields.update(
            caseId=case_id,
            transactionHashes=json.dumps(fields["transactionHashes"]),
            bankReferences=json.dumps(fields["bankReferences"]),
        )
        uploads = [("evidence", (f.filename, f.stream, f.mimetype)) for f in evidence]
        if not forward_raw(forward_url, forward_fields, files=uploads or None):
            log_event("CASE_FORWARD_FAIL", case_id=case_id)

    sent, _ = send_confirmation_email(fields["contactEmail"], case_id)
    if not sent:
        logger.warning("Confirmation email for case %s not sent", case_id)

    return jsonify(success=True, caseId=case_id, message="Case submitted successfully"), 200
