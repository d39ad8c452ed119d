import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from werkzeug.security import generate_password_hash, check_password_hash

from extensions import db


def _utcnow():
    return datetime.now(timezone.utc)


class RoleName(enum.Enum):
    BUYER = "buyer"
    MANAGER = "manager"
    ADMIN = "admin"


class LogisticRequestStatus(enum.Enum):
    DRAFT = "draft"
    FORMED = "formed"
    COMPLETED = "completed"
    REJECTED = "rejected"


FINAL_STATUSES = frozenset({LogisticRequestStatus.COMPLETED, LogisticRequestStatus.REJECTED})


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(db.String(36), unique=True, nullable=False, default=lambda: str(uuid.uuid4()))
    login = db.Column(db.String(100), unique=True, nullable=False)
    email = db.Column(db.String(150), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    phone = db.Column(db.String(20))
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.Enum(RoleName), nullable=False, default=RoleName.BUYER)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def get_role_name(self):
        return self.role.value if self.role else None

    def __repr__(self):
        return f"<User {self.login} ({self.get_role_name()})>"


class TransportService(db.Model):
    __tablename__ = "transport_services"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    price = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    delivery_days = db.Column(db.Integer, nullable=False, default=0)
    delivery_type = db.Column(db.String(50))
    image_url = db.Column(db.String(500))
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
    deleted_at = db.Column(db.DateTime(timezone=True))

    @classmethod
    def active(cls):
        return cls.query.filter(cls.deleted_at.is_(None))

    def __repr__(self):
        return f"<TransportService {self.id} {self.name}>"


class LogisticRequest(db.Model):
    __tablename__ = "logistic_requests"

    id = db.Column(db.Integer, primary_key=True)
    creator_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    moderator_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    status = db.Column(db.Enum(LogisticRequestStatus), nullable=False, default=LogisticRequestStatus.DRAFT)

    from_city = db.Column(db.String(120))
    to_city = db.Column(db.String(120))
    weight = db.Column(db.Float, nullable=False, default=0)
    length = db.Column(db.Float, nullable=False, default=0)
    width = db.Column(db.Float, nullable=False, default=0)
    height = db.Column(db.Float, nullable=False, default=0)

    total_cost = db.Column(db.Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    total_days = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
    formed_at = db.Column(db.DateTime(timezone=True))
    completed_at = db.Column(db.DateTime(timezone=True))
    deleted_at = db.Column(db.DateTime(timezone=True))

    creator = db.relationship("User", foreign_keys=[creator_id])
    moderator = db.relationship("User", foreign_keys=[moderator_id])
    services = db.relationship(
        "LogisticRequestService",
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="LogisticRequestService.sort_order, LogisticRequestService.id",
    )

    @classmethod
    def active(cls):
        return cls.query.filter(cls.deleted_at.is_(None))

    @property
    def is_draft(self):
        return self.status == LogisticRequestStatus.DRAFT

    def has_cargo(self):
        return bool(self.from_city and self.to_city) and all(
            (value or 0) > 0 for value in (self.length, self.width, self.height, self.weight)
        )

    def __repr__(self):
        return f"<LogisticRequest {self.id} ({self.status.value if self.status else None})>"


class LogisticRequestService(db.Model):
    __tablename__ = "logistic_request_services"
    __table_args__ = (
        db.UniqueConstraint("logistic_request_id", "transport_service_id", name="uq_request_service"),
    )

    id = db.Column(db.Integer, primary_key=True)
    logistic_request_id = db.Column(
        db.Integer, db.ForeignKey("logistic_requests.id", ondelete="CASCADE"), nullable=False
    )
    transport_service_id = db.Column(db.Integer, db.ForeignKey("transport_services.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    comment = db.Column(db.String(500))
    # Quote snapshot for the whole line (already multiplied by quantity)
    cost = db.Column(db.Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    days = db.Column(db.Integer, nullable=False, default=0)

    request = db.relationship("LogisticRequest", back_populates="services")
    transport_service = db.relationship("TransportService")
