import logging
from datetime import datetime

from flask import Blueprint, request, jsonify, current_app

from models import db
from models.fraud_case import FraudCase
from security.otp import generate_code
from security.rate_limit import client_ip, rate_config
from utils.audit import log_event
from utils.emailer import send_otp_email
from utils.validation import validate_email

logger = logging.getLogger(__name__)

otp_bp = Blueprint("otp", __name__, url_prefix="/api")

INVALID_CODE_MESSAGE = "Code invalid or expired. Please request a new one."


def _limiter():
    return current_app.extensions["rate_limiter"]


def _sessions():
    return current_app.extensions["otp_sessions"]


def _read_email_and_case(data: dict):
    email = (data.get("email") or "").strip().lower() if isinstance(data.get("email"), str) else ""
    case_id = (data.get("caseId") or "").strip() if isinstance(data.get("caseId"), str) else ""
    return email, case_id


@otp_bp.post("/send-otp")
def send_otp():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    email, case_id = _read_email_and_case(data)

    if not email or not case_id:
        return jsonify(error="Email and case ID are required"), 400
    if not validate_email(email):
        return jsonify(error="Invalid email"), 400

    identifier = f"otp-send:{client_ip()}:{email}"
    if not _limiter().is_allowed(identifier, rate_config(current_app.config.get("OTP_SEND_RATE"))):
        log_event("OTP_RATE_LIMIT", case_id=case_id)
        return jsonify(error="Too many requests. Try again later."), 429

    ttl = current_app.config.get("OTP_TTL_SECONDS", 600)
    code = generate_code(current_app.config.get("OTP_LENGTH", 6))

    sent, error = send_otp_email(email, code, case_id, ttl)
    if not sent:
        logger.error("OTP email for case %s not sent: %s", case_id, error)
        log_event("OTP_SEND_FAIL", case_id=case_id)
        return jsonify(error="Failed to send OTP email"), 500

    token = _sessions().create_token(email, case_id, code, ttl)
    log_event("OTP_SENT", case_id=case_id)

    body = {"success": True, "message": "OTP sent successfully"}
    if current_app.config.get("APP_ENV") == "development":
        body["otp"] = code

    resp = jsonify(body)
    resp.set_cookie(
        current_app.config.get("OTP_COOKIE_NAME", "fv_otp"),
        token,
        httponly=True,
        secure=current_app.config.get("APP_ENV") == "production",
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=ttl,
        path="/",
    )
    return resp, 200


@otp_bp.post("/verify-otp")
def verify_otp():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    email, case_id = _read_email_and_case(data)
    code = data.get("code")
    code = code.strip() if isinstance(code, str) else ""

    if not email or not case_id or not code:
        return jsonify(error="Email, case ID and code are required"), 400

    identifier = f"otp-verify:{client_ip()}:{email}"
    if not _limiter().is_allowed(identifier, rate_config(current_app.config.get("OTP_VERIFY_RATE"))):
        log_event("OTP_VERIFY_RATE_LIMIT", case_id=case_id)
        return jsonify(error="Too many requests. Try again later."), 429

    cookie_name = current_app.config.get("OTP_COOKIE_NAME", "fv_otp")
    token = request.cookies.get(cookie_name)
    payload = _sessions().verify_code(token, code)

    if payload is None or payload.email != email or payload.case_id != case_id:
        log_event("OTP_VERIFY_FAIL", case_id=case_id)
        return jsonify(error=INVALID_CODE_MESSAGE), 400

    case = FraudCase.query.filter_by(case_id=case_id).first()
    if case and case.victim_email.lower() == email and case.email_verified_at is None:
        case.email_verified_at = datetime.utcnow()
        db.session.commit()

    log_event("OTP_VERIFIED", case_id=case_id)

    resp = jsonify(success=True, verified=True, caseId=case_id)
    resp.delete_cookie(cookie_name, path="/")
    return resp, 200
