from ..extensions import db
from ..utils.dates import utcnow, isoformat


class DailyScan(db.Model):
    __tablename__ = "daily_scans"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    scan_date = db.Column(db.String(10), nullable=False)  # YYYY-MM-DD, UTC
    scan_count = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint('user_id', 'scan_date', name='uq_daily_scans_user_date'),
    )

    def to_dict(self):
        return {
            "userId": self.user_id,
            "scanDate": self.scan_date,
            "scanCount": self.scan_count,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }
