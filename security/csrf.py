import logging
from urllib.parse import urlparse

from flask import request, jsonify

logger = logging.getLogger(__name__)

PROTECTED_PREFIXES = ("/api/submit/", "/api/contact", "/api/report", "/api/submit-case")


def _origin_of(url: str) -> str:
    parts = urlparse(url)
    if not parts.scheme or not parts.netloc:
        return ""
    return f"{parts.scheme}://{parts.netloc}"


def is_protected_path(path: str) -> bool:
    return any(path.startswith(prefix) for prefix in PROTECTED_PREFIXES)


def require_same_origin():
    """
    Rejects cross-origin form POSTs. Requests with neither Origin nor
    Referer (curl, server-to-server) pass through.
    """
    allowed = request.host_url.rstrip("/")
    origin = request.headers.get("Origin")
    referer = request.headers.get("Referer")

    if origin and origin.rstrip("/") != allowed:
        logger.warning("Cross-origin POST blocked: origin=%s path=%s", origin, request.path)
        return _reject()

    if referer and _origin_of(referer) != allowed:
        logger.warning("Cross-origin POST blocked: referer=%s path=%s", referer, request.path)
        return _reject()

    return None


def _reject():
    return jsonify(
        success=False,
        message="Request rejected for security reasons.",
        code="CSRF_ERROR",
    ), 403
