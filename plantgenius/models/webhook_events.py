import uuid
from ..extensions import db
from ..utils.dates import utcnow


class WebhookEvent(db.Model):
    __tablename__ = 'webhook_events'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = db.Column(db.String(255), unique=True, nullable=False, index=True)  # event type + reference, for idempotency
    event_type = db.Column(db.String(100), nullable=False, index=True)  # e.g. charge.success
    reference = db.Column(db.String(100), nullable=True, index=True)
    customer_email = db.Column(db.String(254), nullable=True)
    payload = db.Column(db.Text, nullable=False)
    processed = db.Column(db.Boolean, default=False, nullable=False, index=True)
    error_message = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    processed_at = db.Column(db.DateTime, nullable=True)

    def __repr__(self):
        return f"<WebhookEvent {self.event_id} - {self.event_type}>"
