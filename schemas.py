from extensions import ma
from models import (
    LogisticRequest,
    LogisticRequestService,
    LogisticRequestStatus,
    RoleName,
    TransportService,
    User,
)
from marshmallow import fields


class UserSchema(ma.SQLAlchemyAutoSchema):
    role = fields.Enum(RoleName, by_value=True)

    class Meta:
        model = User
        exclude = ("password_hash",)


class UserBriefSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = User
        fields = ("id", "login", "name")


class TransportServiceSchema(ma.SQLAlchemyAutoSchema):
    # Explicitly define Decimal fields as Float for JSON serialization
    price = fields.Float()

    class Meta:
        model = TransportService
        exclude = ("deleted_at",)


class LogisticRequestServiceSchema(ma.SQLAlchemyAutoSchema):
    cost = fields.Float()
    transport_service = ma.Nested(TransportServiceSchema)

    class Meta:
        model = LogisticRequestService
        include_fk = True


class LogisticRequestSchema(ma.SQLAlchemyAutoSchema):
    status = fields.Enum(LogisticRequestStatus, by_value=True)
    total_cost = fields.Float()
    creator = ma.Nested(UserBriefSchema)
    moderator = ma.Nested(UserBriefSchema, allow_none=True)
    services = ma.Nested(LogisticRequestServiceSchema, many=True)

    class Meta:
        model = LogisticRequest
        include_fk = True
        exclude = ("deleted_at",)


user_schema = UserSchema()
transport_service_schema = TransportServiceSchema()
transport_services_schema = TransportServiceSchema(many=True)
logistic_request_schema = LogisticRequestSchema()
logistic_requests_schema = LogisticRequestSchema(many=True, exclude=("services",))
