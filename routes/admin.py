from datetime import datetime

from flask import Blueprint, request, jsonify, current_app

from models import db
from models.admin_user import AdminUser
from security.password import check_admin_password
from security.rate_limit import client_ip, rate_config
from utils.audit import log_event

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.post("/auth")
def admin_auth():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    email = data.get("email")
    password = data.get("password")
    email = email.strip().lower() if isinstance(email, str) else ""
    password = password if isinstance(password, str) else ""

    if not email or not password:
        return jsonify(error="Email and password required"), 400

    limiter = current_app.extensions["rate_limiter"]
    if not limiter.is_allowed(f"admin:{client_ip()}", rate_config(current_app.config.get("ADMIN_LOGIN_RATE"))):
        log_event("ADMIN_LOGIN_RATE_LIMIT")
        return jsonify(error="Too many requests. Try again later."), 429

    admin = AdminUser.query.filter_by(email=email).first()
    active = admin is not None and admin.status == "active"
    password_ok = check_admin_password(password, admin.password_hash if admin else None)

    if not active or not password_ok:
        log_event("ADMIN_LOGIN_FAIL", admin_user_id=admin.id if admin else None)
        return jsonify(error="Invalid credentials"), 401

    admin.last_login_at = datetime.utcnow()
    db.session.commit()
    log_event("ADMIN_LOGIN_SUCCESS", admin_user_id=admin.id)

    return jsonify(success=True, admin=admin.to_public_dict()), 200
