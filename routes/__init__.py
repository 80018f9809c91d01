from .health import health_bp
from .otp import otp_bp
from .submissions import submissions_bp
from .admin import admin_bp
