import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # production | development | testing. Unset means production.
    APP_ENV = os.getenv("APP_ENV", "production").strip().lower()

    # Signs the fv_otp cookie. Required in production.
    OTP_SIGNING_SECRET = os.getenv("OTP_SIGNING_SECRET")

    # SQLite database file stored next to the app as fortivault.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "fortivault.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # OTP cookie
    OTP_COOKIE_NAME = "fv_otp"
    OTP_LENGTH = int(os.getenv("OTP_LENGTH", "6"))
    OTP_TTL_SECONDS = int(os.getenv("OTP_TTL_SECONDS", "600"))  # 10 minutes
    SESSION_COOKIE_SAMESITE = "Lax"

    # Fixed-window budgets: (window_ms, max_requests)
    FRAUD_REPORT_RATE = (60 * 60 * 1000, 5)
    CONTACT_RATE = (60 * 60 * 1000, 10)
    OTP_SEND_RATE = (10 * 60 * 1000, 5)
    OTP_VERIFY_RATE = (10 * 60 * 1000, 10)
    ADMIN_LOGIN_RATE = (10 * 60 * 1000, 10)

    # Form relay (Web3Forms)
    WEB3FORMS_API_KEY = os.getenv("WEB3FORMS_API_KEY")
    WEB3FORMS_ENDPOINT = os.getenv("WEB3FORMS_ENDPOINT", "https://api.web3forms.com/submit")
    RELAY_TIMEOUT_SECONDS = int(os.getenv("RELAY_TIMEOUT_SECONDS", "10"))

    # Optional secondary forward for /api/submit-case
    FORMSPREE_URL = os.getenv("FORMSPREE_URL")

    # Evidence uploads
    MAX_EVIDENCE_MB = int(os.getenv("MAX_EVIDENCE_MB", "10"))
    MAX_EVIDENCE_FILES = int(os.getenv("MAX_EVIDENCE_FILES", "10"))
    ALLOWED_EVIDENCE_TYPES = ["image/*", "application/pdf", "text/plain"]
    MAX_CONTENT_LENGTH = 110 * 1024 * 1024

    # Email (SMTP)
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL", "noreply@fortivault.com")
    SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

    SUPPORT_EMAIL = os.getenv("SUPPORT_EMAIL", "support@fortivault.com")

    # Basic app settings
    DEBUG = False
