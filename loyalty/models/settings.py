"""
Runtime settings an admin can change without a redeploy.
"""
from datetime import datetime
from ..extensions import db


class SystemSetting(db.Model):
    """Key/value setting. Values are stored as text and parsed by the reader."""
    __tablename__ = 'system_settings'

    key = db.Column(db.String(50), primary_key=True)
    value = db.Column(db.String(255), nullable=False)
    updated_by = db.Column(db.String(100))
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<SystemSetting {self.key}={self.value}>'

    def to_dict(self):
        return {
            'key': self.key,
            'value': self.value,
            'updated_by': self.updated_by,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
