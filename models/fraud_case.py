import json
from datetime import datetime
from models.db import db


class FraudCase(db.Model):
    __tablename__ = "fraud_cases"

    id = db.Column(db.Integer, primary_key=True)
    case_id = db.Column(db.String(64), unique=True, nullable=False, index=True)
    form_name = db.Column(db.String(40), nullable=False, default="fraud-report")

    full_name = db.Column(db.String(120), nullable=True)
    victim_email = db.Column(db.String(255), nullable=False, index=True)
    victim_phone = db.Column(db.String(30), nullable=True)

    scam_type = db.Column(db.String(80), nullable=False)
    amount = db.Column(db.Numeric(18, 2), nullable=True)
    currency = db.Column(db.String(16), nullable=True)
    timeline = db.Column(db.Text, nullable=True)
    description = db.Column(db.Text, nullable=True)

    # JSON-encoded lists
    transaction_hashes_json = db.Column(db.Text, nullable=True)
    bank_references_json = db.Column(db.Text, nullable=True)
    file_names_json = db.Column(db.Text, nullable=True)
    files_count = db.Column(db.Integer, default=0, nullable=False)

    status = db.Column(db.String(20), nullable=False, default="Intake")  # Intake, Received, Relayed
    email_verified_at = db.Column(db.DateTime, nullable=True)

    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    @property
    def transaction_hashes(self):
        return json.loads(self.transaction_hashes_json) if self.transaction_hashes_json else []

    @property
    def bank_references(self):
        return json.loads(self.bank_references_json) if self.bank_references_json else []

    @property
    def file_names(self):
        return json.loads(self.file_names_json) if self.file_names_json else []

    def to_dict(self):
        return {
            "caseId": self.case_id,
            "formName": self.form_name,
            "fullName": self.full_name,
            "email": self.victim_email,
            "phone": self.victim_phone,
            "scamType": self.scam_type,
            "amount": str(self.amount) if self.amount is not None else None,
            "currency": self.currency,
            "timeline": self.timeline,
            "transactionHashes": self.transaction_hashes,
            "bankReferences": self.bank_references,
            "filesCount": self.files_count,
            "fileNames": self.file_names,
            "status": self.status,
            "emailVerified": self.email_verified_at is not None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
