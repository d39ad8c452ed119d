from flask import Blueprint
from flask_restful import Api, Resource

from utils.auth import permission_required
from utils.drafts import (
    add_service_to_draft,
    clear_draft,
    draft_quantity_sum,
    get_or_create_draft,
    remove_service_from_draft,
)
from utils.errors import error_status
from utils.permissions import Action

drafts_bp = Blueprint("drafts", __name__)
api = Api(drafts_bp)


class DraftIcon(Resource):
    @permission_required(Action.EDIT_DRAFT)
    def get(self, current_user):
        """Draft id and total quantity for the cart icon; creates the draft on first use."""
        draft = get_or_create_draft(current_user.id)
        return {"status": "ok", "request_id": draft.id, "count": draft_quantity_sum(draft.id)}, 200

    @permission_required(Action.EDIT_DRAFT)
    def delete(self, current_user):
        request_id = clear_draft(current_user.id)
        return {"status": "ok", "request_id": request_id, "count": 0}, 200


class DraftService(Resource):
    @permission_required(Action.EDIT_DRAFT)
    def post(self, service_id, current_user):
        draft = get_or_create_draft(current_user.id)
        try:
            count = add_service_to_draft(draft.id, service_id)
        except (ValueError, LookupError) as exc:
            return {"error": str(exc)}, error_status(exc)

        return {
            "status": "ok",
            "request_id": draft.id,
            "count": count,
            "message": "Transport service added to the draft",
        }, 200

    @permission_required(Action.EDIT_DRAFT)
    def delete(self, service_id, current_user):
        draft = get_or_create_draft(current_user.id)
        try:
            count = remove_service_from_draft(draft.id, service_id)
        except (ValueError, LookupError) as exc:
            return {"error": str(exc)}, error_status(exc)

        return {"status": "ok", "request_id": draft.id, "count": count}, 200


api.add_resource(DraftIcon, "/api/logistic-requests/draft")
api.add_resource(DraftService, "/api/logistic-requests/draft/services/<int:service_id>")
