"""Forwards validated submissions to the Web3Forms relay."""
import logging
from datetime import datetime, timezone

import requests
from flask import current_app

logger = logging.getLogger(__name__)


class RelayError(Exception):
    """A relay failure with a message that is safe to show the submitter."""

    status_code = 503
    code = "SUBMISSION_SERVICE_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_response(self):
        return {"success": False, "message": self.message, "code": self.code}


class RelayUnavailable(RelayError):
    status_code = 503


class RelayBadResponse(RelayError):
    status_code = 500
    code = "SUBMISSION_SERVICE_ERROR"


class RelayRejected(RelayError):
    status_code = 400
    code = "SUBMISSION_REJECTED"


def relay_configured() -> bool:
    key = current_app.config.get("WEB3FORMS_API_KEY")
    return isinstance(key, str) and len(key.strip()) > 0


def _message_for_status(status: int) -> str:
    if status in (401, 403):
        return "Server authentication failed. Please contact support."
    if status == 429:
        return "Too many submissions. Please wait a moment and try again."
    if status >= 500:
        return "The submission service is temporarily unavailable. Please try again in a few moments."
    return "Unable to process your submission. Please try again later."


def relay_submission(form_name: str, fields: dict, session: requests.Session = None) -> dict:
    """
    POSTs the form fields plus access key to the relay and returns its JSON
    reply. Raises a RelayError subclass on any failure.
    """
    endpoint = current_app.config["WEB3FORMS_ENDPOINT"]
    timeout = current_app.config.get("RELAY_TIMEOUT_SECONDS", 10)

    data = {
        "access_key": current_app.config["WEB3FORMS_API_KEY"].strip(),
        "form_name": form_name,
        "submittedAt": datetime.now(timezone.utc).isoformat(),
    }
    data.update({k: v for k, v in fields.items() if v is not None})

    http = session or requests
    try:
        resp = http.post(endpoint, data=data, timeout=timeout)
    except requests.RequestException as exc:
        logger.error("Relay unreachable for %s: %s", form_name, exc)
        raise RelayUnavailable(
            "Unable to process your submission at this time. Please try again in a few moments."
        ) from exc

    if not resp.ok:
        logger.error("Relay returned %s for %s", resp.status_code, form_name)
        raise RelayUnavailable(_message_for_status(resp.status_code))

    try:
        result = resp.json()
    except ValueError as exc:
        logger.error("Relay reply for %s was not JSON", form_name)
        raise RelayBadResponse("Invalid response from submission service.") from exc

    if not isinstance(result, dict) or not result.get("success"):
        logger.error("Relay rejected %s: %s", form_name, result)
        raise RelayRejected("Submission failed. Please try again.")

    return result


def forward_raw(url: str, fields: dict, files=None) -> bool:
    """Best-effort secondary forward. Returns False on any transport failure."""
    timeout = current_app.config.get("RELAY_TIMEOUT_SECONDS", 10)
    try:
        resp = requests.post(url, data=fields, files=files, timeout=timeout)
    except requests.RequestException as exc:
        logger.error("Secondary forward to %s failed: %s", url, exc)
        return False
    if not resp.ok:
        logger.error("Secondary forward to %s returned %s", url, resp.status_code)
        return False
    return True
