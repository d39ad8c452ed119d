from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation

from flask import Blueprint, request
from flask_restful import Api, Resource
from sqlalchemy import func, or_

from extensions import db
from models import TransportService
from schemas import transport_service_schema, transport_services_schema
from utils.auth import permission_required
from utils.errors import ValidationError, clean_text
from utils.permissions import Action

transport_services_bp = Blueprint("transport_services", __name__)
api = Api(transport_services_bp)

SERVICE_TEXT_FIELDS = ("name", "description", "delivery_type", "image_url")


def _parse_float(value):
    try:
        return float(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


def _parse_date(value):
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return None


def search_services(search="", min_price=None, max_price=None, date_from=None, date_to=None, transport_type=""):
    query = TransportService.active()

    if search:
        pattern = f"%{search.lower()}%"
        query = query.filter(or_(
            func.lower(TransportService.name).like(pattern),
            func.lower(TransportService.description).like(pattern),
        ))

    if transport_type:
        pattern = f"%{transport_type.lower()}%"
        query = query.filter(or_(
            func.lower(TransportService.name).like(pattern),
            func.lower(TransportService.delivery_type).like(pattern),
        ))

    if min_price is not None:
        query = query.filter(TransportService.price >= min_price)
    if max_price is not None:
        query = query.filter(TransportService.price <= max_price)
    if date_from is not None:
        query = query.filter(TransportService.created_at >= date_from)
    if date_to is not None:
        # date_to is inclusive of the whole day
        query = query.filter(TransportService.created_at < date_to + timedelta(days=1))

    return query.order_by(TransportService.id.asc()).all()


def _apply_service_fields(service, data, partial):
    if not partial and not clean_text(data.get("name"), "name"):
        raise ValidationError("name is required")

    for field in SERVICE_TEXT_FIELDS:
        if field in data:
            value = clean_text(data.get(field), field)
            if field == "name" and not value:
                raise ValidationError("name cannot be empty")
            setattr(service, field, value or None)

    if "price" in data or not partial:
        try:
            price = Decimal(str(data.get("price", 0)))
        except (InvalidOperation, ValueError):
            raise ValidationError("price must be numeric")
        if not price.is_finite() or price < 0:
            raise ValidationError("price must be a non-negative number")
        service.price = price

    if "delivery_days" in data or not partial:
        try:
            days = int(data.get("delivery_days", 0))
        except (TypeError, ValueError):
            raise ValidationError("delivery_days must be an integer")
        if days < 0:
            raise ValidationError("delivery_days must be a non-negative integer")
        service.delivery_days = days


class TransportServiceList(Resource):
    def get(self):
        services = search_services(
            search=request.args.get("search", "").strip(),
            min_price=_parse_float(request.args.get("minPrice")),
            max_price=_parse_float(request.args.get("maxPrice")),
            date_from=_parse_date(request.args.get("dateFrom")),
            date_to=_parse_date(request.args.get("dateTo")),
        )
        return {"status": "ok", "transport_services": transport_services_schema.dump(services)}, 200

    @permission_required(Action.MANAGE_SERVICES)
    def post(self, current_user):
        data = request.get_json(silent=True) or {}
        service = TransportService()
        try:
            _apply_service_fields(service, data, partial=False)
        except ValidationError as exc:
            return {"error": str(exc)}, 400

        db.session.add(service)
        db.session.commit()
        return {"status": "ok", "service": transport_service_schema.dump(service)}, 201


class TransportServiceSearch(Resource):
    def post(self):
        data = request.get_json(silent=True) or request.form or {}
        try:
            services = search_services(
                search=clean_text(data.get("search_query"), "search_query"),
                transport_type=clean_text(data.get("transport_type"), "transport_type"),
            )
        except ValidationError as exc:
            return {"error": str(exc)}, 400
        return {
            "status": "ok",
            "transports": transport_services_schema.dump(services),
            "count": len(services),
        }, 200


class TransportServiceDetail(Resource):
    def get(self, service_id):
        service = TransportService.active().filter_by(id=service_id).first()
        if not service:
            return {"error": "service not found"}, 404
        return {"status": "ok", "service": transport_service_schema.dump(service)}, 200

    @permission_required(Action.MANAGE_SERVICES)
    def put(self, service_id, current_user):
        service = TransportService.active().filter_by(id=service_id).first()
        if not service:
            return {"error": "service not found"}, 404

        data = request.get_json(silent=True) or {}
        try:
            _apply_service_fields(service, data, partial=True)
        except ValidationError as exc:
            db.session.rollback()
            return {"error": str(exc)}, 400

        db.session.commit()
        return {"status": "ok", "service": transport_service_schema.dump(service)}, 200

    @permission_required(Action.MANAGE_SERVICES)
    def delete(self, service_id, current_user):
        service = TransportService.active().filter_by(id=service_id).first()
        if not service:
            return {"error": "service not found"}, 404

        # Soft delete: existing requests keep pointing at the row
        service.deleted_at = datetime.now(timezone.utc)
        db.session.commit()
        return {"status": "ok"}, 200


api.add_resource(TransportServiceList, "/api/transport-services")
api.add_resource(TransportServiceSearch, "/api/transport-services/search")
api.add_resource(TransportServiceDetail, "/api/transport-services/<int:service_id>")
