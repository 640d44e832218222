import uuid
from ..extensions import db
from ..utils.dates import utcnow, isoformat


PLAN_TYPES = ("basic", "premium")
BILLING_CYCLES = ("monthly", "yearly")
STATUSES = ("active", "cancelled", "expired")


class Subscription(db.Model):
    __tablename__ = 'subscriptions'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    plan_type = db.Column(db.String(20), nullable=False)
    billing_cycle = db.Column(db.String(20), default='monthly', nullable=False)
    # Stored status only records cancellation; expiry is decided from end_date
    status = db.Column(db.String(20), default='active', nullable=False)
    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=False)
    # Unique so one payment can never activate two subscriptions
    payment_reference = db.Column(db.String(100), unique=True, nullable=True)
    amount = db.Column(db.Integer, default=0, nullable=True)  # kobo
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        db.Index('ix_subscriptions_user_status', 'user_id', 'status'),
    )

    def __repr__(self):
        return f"<Subscription {self.id} {self.plan_type} {self.status}>"

    def effective_status(self, now=None) -> str:
        if self.status == 'cancelled':
            return 'cancelled'
        if self.end_date <= (now or utcnow()):
            return 'expired'
        return self.status

    def grants_access(self, now=None) -> bool:
        return self.effective_status(now) == 'active'

    def to_dict(self, now=None):
        """Convert to dictionary for API responses"""
        return {
            'id': self.id,
            'userId': self.user_id,
            'planType': self.plan_type,
            'billingCycle': self.billing_cycle,
            'status': self.effective_status(now),
            'startDate': isoformat(self.start_date),
            'endDate': isoformat(self.end_date),
            'paymentReference': self.payment_reference,
            'amount': self.amount,
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }
