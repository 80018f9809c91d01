from datetime import datetime, timezone

from flask import Blueprint, jsonify, current_app

from utils.env_check import config_status

health_bp = Blueprint("health", __name__)


@health_bp.get("/health")
def health():
    return jsonify(status="ok"), 200


@health_bp.get("/api/env-health")
def env_health():
    status = config_status(current_app.config)
    status["timestamp"] = datetime.now(timezone.utc).isoformat()
    return jsonify(status), 200 if status["isValid"] else 503
