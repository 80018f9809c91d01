from .db import db
from .fraud_case import FraudCase
from .contact_message import ContactMessage
from .admin_user import AdminUser
from .audit_log import AuditLog
