from datetime import datetime, timedelta
from typing import Optional

from flask import Blueprint, current_app, request
from flask_restful import Api, Resource

from extensions import db
from models import LogisticRequest, LogisticRequestStatus, TransportService
from schemas import logistic_request_schema, logistic_requests_schema
from socket_events import emit_request_status
from utils.aggregation import create_cargo_request, parse_items
from utils.auth import any_authenticated_user, moderator_required, permission_required
from utils.delivery import calculate_delivery
from utils.drafts import remove_service_from_draft, update_draft_line
from utils.email_service import notify_creator_of_decision
from utils.errors import PermissionDenied, error_status
from utils.moderation import complete_request, delete_request, form_request, update_draft_request
from utils.permissions import Action, is_allowed

logistic_requests_bp = Blueprint("logistic_requests", __name__)
api = Api(logistic_requests_bp)


def _error(exc):
    return {"error": str(exc)}, error_status(exc)


def _parse_date(value: Optional[str]):
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return None


def _visible_request(request_id, current_user) -> LogisticRequest:
    logistic_request = LogisticRequest.active().filter_by(id=request_id).first()
    if not logistic_request:
        raise LookupError("logistic request not found")
    if logistic_request.creator_id != current_user.id and not is_allowed(current_user.role, Action.VIEW_ALL_REQUESTS):
        raise PermissionDenied("Access denied")
    return logistic_request


def _owned_request(request_id, current_user) -> LogisticRequest:
    logistic_request = LogisticRequest.active().filter_by(id=request_id).first()
    if not logistic_request:
        raise LookupError("logistic request not found")
    if logistic_request.creator_id != current_user.id:
        raise PermissionDenied("only the creator can change this logistic request")
    return logistic_request


class DeliveryQuoteResource(Resource):
    def post(self):
        """Quote one transport service for one cargo; nothing is stored."""
        data = request.get_json(silent=True) or request.form or {}

        try:
            service_id = int(data.get("service_id"))
        except (TypeError, ValueError):
            return {"error": "service_id must be an integer"}, 400

        service = TransportService.active().filter_by(id=service_id).first()
        if not service:
            return {"error": "transport type not found"}, 404

        quote = calculate_delivery(
            service,
            data.get("from_city"),
            data.get("to_city"),
            data.get("length"),
            data.get("width"),
            data.get("height"),
            data.get("weight"),
        )
        if not quote.is_valid:
            return {"error": quote.error_message}, 400

        payload = {"status": "ok", "service_id": service.id}
        payload.update(quote.to_dict())
        return payload, 200


class LogisticRequestList(Resource):
    @permission_required(Action.CREATE_REQUEST)
    def post(self, current_user):
        """Create a request from quoted cargo items in one transaction."""
        data = request.get_json(silent=True) or {}

        try:
            items = parse_items(data.get("services", []))
            request_id = create_cargo_request(items, current_user.id)
        except (ValueError, LookupError) as exc:
            return _error(exc)

        logistic_request = db.session.get(LogisticRequest, request_id)
        return {
            "status": "success",
            "message": "Logistic request created",
            "request_id": request_id,
            "creator_id": current_user.id,
            "logistic_request": logistic_request_schema.dump(logistic_request),
        }, 201

    @permission_required(Action.VIEW_OWN_REQUESTS)
    def get(self, current_user):
        """Formed and closed requests; buyers only see their own."""
        query = LogisticRequest.active().filter(LogisticRequest.status != LogisticRequestStatus.DRAFT)

        status = request.args.get("status")
        if status:
            try:
                query = query.filter(LogisticRequest.status == LogisticRequestStatus(status))
            except ValueError:
                return {"error": f"unknown status '{status}'"}, 400

        date_from = _parse_date(request.args.get("date_from"))
        date_to = _parse_date(request.args.get("date_to"))
        if date_from:
            query = query.filter(LogisticRequest.formed_at >= date_from)
        if date_to:
            query = query.filter(LogisticRequest.formed_at < date_to + timedelta(days=1))

        if not is_allowed(current_user.role, Action.VIEW_ALL_REQUESTS):
            query = query.filter(LogisticRequest.creator_id == current_user.id)

        requests_ = query.order_by(LogisticRequest.created_at.desc(), LogisticRequest.id.desc()).all()
        return {"status": "ok", "logistic_requests": logistic_requests_schema.dump(requests_)}, 200


class LogisticRequestDetail(Resource):
    @permission_required(Action.VIEW_OWN_REQUESTS)
    def get(self, request_id, current_user):
        try:
            logistic_request = _visible_request(request_id, current_user)
        except (LookupError, PermissionDenied) as exc:
            return _error(exc)
        return {"status": "ok", "logistic_request": logistic_request_schema.dump(logistic_request)}, 200

    @any_authenticated_user
    def delete(self, request_id, current_user):
        logistic_request = LogisticRequest.active().filter_by(id=request_id).first()
        if not logistic_request:
            return {"error": "logistic request not found"}, 404

        own_draft = logistic_request.creator_id == current_user.id and logistic_request.is_draft
        if not (
            is_allowed(current_user.role, Action.DELETE_ANY_REQUEST)
            or (own_draft and is_allowed(current_user.role, Action.DELETE_OWN_REQUEST))
        ):
            return {"error": "Access denied"}, 403

        try:
            delete_request(request_id)
        except LookupError as exc:
            return _error(exc)
        return {"status": "ok", "message": "logistic request deleted successfully"}, 200


class LogisticRequestUpdate(Resource):
    @permission_required(Action.EDIT_DRAFT)
    def put(self, request_id, current_user):
        data = request.get_json(silent=True) or {}
        try:
            logistic_request = update_draft_request(request_id, current_user.id, data)
        except (ValueError, LookupError, PermissionDenied) as exc:
            return _error(exc)
        return {"status": "ok", "logistic_request": logistic_request_schema.dump(logistic_request)}, 200


class LogisticRequestForm(Resource):
    @permission_required(Action.FORM_REQUEST)
    def put(self, request_id, current_user):
        data = request.get_json(silent=True) or {}
        try:
            logistic_request = form_request(
                request_id,
                current_user.id,
                data.get("from_city"),
                data.get("to_city"),
                data.get("weight"),
                data.get("length"),
                data.get("width"),
                data.get("height"),
            )
        except (ValueError, LookupError, PermissionDenied) as exc:
            return _error(exc)

        emit_request_status(logistic_request)
        return {
            "status": "ok",
            "message": "Logistic request formed",
            "logistic_request": logistic_request_schema.dump(logistic_request),
        }, 200


class LogisticRequestComplete(Resource):
    @moderator_required
    def put(self, request_id, current_user):
        data = request.get_json(silent=True) or {}
        try:
            logistic_request = complete_request(request_id, data.get("status"), current_user.id)
        except (ValueError, LookupError) as exc:
            return _error(exc)

        current_app.logger.info(
            "Logistic request %s %s by moderator %s",
            logistic_request.id, logistic_request.status.value, current_user.id,
        )
        emit_request_status(logistic_request)
        try:
            notify_creator_of_decision(logistic_request)
        except Exception as exc:  # pragma: no cover - don't block moderation on email failure
            current_app.logger.error(
                "Failed to notify creator of logistic request %s: %s", logistic_request.id, exc
            )

        return {
            "status": "success",
            "message": f"Logistic request {logistic_request.status.value}",
            "logistic_request": logistic_request_schema.dump(logistic_request),
        }, 200


class LogisticRequestLine(Resource):
    @permission_required(Action.EDIT_DRAFT)
    def put(self, request_id, service_id, current_user):
        data = request.get_json(silent=True) or {}
        try:
            quantity = int(data.get("quantity"))
            sort_order = int(data["sort_order"]) if data.get("sort_order") is not None else None
        except (TypeError, ValueError):
            return {"error": "quantity and sort_order must be integers"}, 400

        try:
            _owned_request(request_id, current_user)
            update_draft_line(request_id, service_id, quantity, sort_order, data.get("comment"))
        except (ValueError, LookupError, PermissionDenied) as exc:
            return _error(exc)
        return {"status": "ok", "message": "logistic request service updated"}, 200

    @permission_required(Action.EDIT_DRAFT)
    def delete(self, request_id, service_id, current_user):
        try:
            _owned_request(request_id, current_user)
            count = remove_service_from_draft(request_id, service_id)
        except (ValueError, LookupError, PermissionDenied) as exc:
            return _error(exc)
        return {"status": "ok", "message": "transport service removed from logistic request", "count": count}, 200


api.add_resource(DeliveryQuoteResource, "/api/logistic-requests/quote")
api.add_resource(LogisticRequestList, "/api/logistic-requests")
api.add_resource(LogisticRequestDetail, "/api/logistic-requests/<int:request_id>")
api.add_resource(LogisticRequestUpdate, "/api/logistic-requests/<int:request_id>/update")
api.add_resource(LogisticRequestForm, "/api/logistic-requests/<int:request_id>/form")
api.add_resource(LogisticRequestComplete, "/api/logistic-requests/<int:request_id>/complete")
api.add_resource(
    LogisticRequestLine, "/api/logistic-requests/<int:request_id>/services/<int:service_id>"
)
