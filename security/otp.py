"""
Email one-time passcodes carried in a signed, self-contained cookie.

Token wire format:

    base64url(JSON(payload)) + "." + base64url(HMAC-SHA256(secret, body))

No server-side session table: the server keeps only the signing secret.
A token stays valid until its exp passes; it is not consumed on use.
"""
import base64
import binascii
import hashlib
import hmac
import json
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Callable, Optional

import bcrypt

logger = logging.getLogger(__name__)

OTP_TTL_SECONDS = 600
OTP_COOKIE_NAME = "fv_otp"
DEV_SIGNING_SECRET = "development-secret"

_BCRYPT_ROUNDS = 10
_NONCE_BYTES = 16


class ConfigurationError(RuntimeError):
    pass


def b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def b64url_decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


def load_signing_secret(config) -> str:
    """
    Returns the OTP signing secret for this app config.

    Production must provide OTP_SIGNING_SECRET, and it may not be the
    development fallback. Everywhere else the fallback is used when unset.
    """
    secret = (config.get("OTP_SIGNING_SECRET") or "").strip()
    production = config.get("APP_ENV") == "production"

    if production:
        if not secret:
            raise ConfigurationError("OTP_SIGNING_SECRET must be set in production")
        if secret == DEV_SIGNING_SECRET:
            raise ConfigurationError("OTP_SIGNING_SECRET is the development fallback; refusing to run in production")
        return secret

    return secret or DEV_SIGNING_SECRET


def generate_code(length: int = 6) -> str:
    if length <= 0:
        raise ValueError("OTP length must be positive")
    return "".join(str(secrets.randbelow(10)) for _ in range(length))


def hash_code(code: str) -> str:
    if not isinstance(code, str) or len(code) == 0:
        raise ValueError("OTP code must be a non-empty string")
    salt = bcrypt.gensalt(rounds=_BCRYPT_ROUNDS)
    return bcrypt.hashpw(code.encode("utf-8"), salt).decode("utf-8")


def verify_hash(code: str, code_hash: str) -> bool:
    if not code or not code_hash:
        return False
    try:
        return bcrypt.checkpw(code.encode("utf-8"), code_hash.encode("utf-8"))
    except ValueError:
        # not a bcrypt hash
        return False


@dataclass(frozen=True)
class OtpSessionPayload:
    email: str
    case_id: str
    hash: str
    exp: int  # epoch seconds
    nonce: str

    def to_json(self) -> str:
        return json.dumps(
            {
                "email": self.email,
                "caseId": self.case_id,
                "hash": self.hash,
                "exp": self.exp,
                "nonce": self.nonce,
            },
            separators=(",", ":"),
        )

    @classmethod
    def from_dict(cls, data: dict) -> "OtpSessionPayload":
        exp = data["exp"]
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            raise ValueError("exp must be a number")
        for field in ("email", "caseId", "hash", "nonce"):
            if not isinstance(data.get(field), str):
                raise ValueError(f"{field} must be a string")
        return cls(
            email=data["email"],
            case_id=data["caseId"],
            hash=data["hash"],
            exp=exp,
            nonce=data["nonce"],
        )


class OtpSessionManager:
    def __init__(self, secret: str, clock: Callable[[], float] = time.time):
        if not secret:
            raise ConfigurationError("OTP signing secret is empty")
        self._secret = secret.encode("utf-8")
        self._clock = clock

    def _mac(self, body: str) -> str:
        digest = hmac.new(self._secret, body.encode("ascii"), hashlib.sha256).digest()
        return b64url_encode(digest)

    def sign(self, payload: OtpSessionPayload) -> str:
        body = b64url_encode(payload.to_json().encode("utf-8"))
        return f"{body}.{self._mac(body)}"

    def create_token(self, email: str, case_id: str, code: str, ttl_seconds: int = OTP_TTL_SECONDS) -> str:
        payload = OtpSessionPayload(
            email=email,
            case_id=case_id,
            hash=hash_code(code),
            exp=int(self._clock()) + int(ttl_seconds),
            nonce=b64url_encode(secrets.token_bytes(_NONCE_BYTES)),
        )
        return self.sign(payload)

    def verify_token(self, token: Optional[str]) -> Optional[OtpSessionPayload]:
        """
        Returns the payload of a well-signed, unexpired token, else None.
        Callers cannot tell which check failed.
        """
        if not token or not isinstance(token, str):
            return None

        body, sep, sig = token.rpartition(".")
        if not sep or not body or not sig:
            return None

        try:
            expected = self._mac(body)
        except UnicodeEncodeError:
            return None

        sig_bytes = sig.encode("utf-8")
        expected_bytes = expected.encode("ascii")
        if len(sig_bytes) != len(expected_bytes) or not hmac.compare_digest(sig_bytes, expected_bytes):
            return None

        try:
            data = json.loads(b64url_decode(body).decode("utf-8"))
            payload = OtpSessionPayload.from_dict(data)
        except (binascii.Error, UnicodeDecodeError, ValueError, KeyError, TypeError):
            logger.warning("OTP token with valid signature failed to parse")
            return None

        if self._clock() > payload.exp:
            return None

        return payload

    def verify_code(self, token: Optional[str], code: str) -> Optional[OtpSessionPayload]:
        payload = self.verify_token(token)
        if payload is None or not verify_hash(code, payload.hash):
            return None
        return payload
