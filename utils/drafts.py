"""Draft request ("cart") line items.

Adding a service upserts on (request, service) and bumps the quantity in the
database; removing decrements and drops the row at zero. Both are single
statements, so concurrent calls for the same draft do not lose updates.
"""

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite

from extensions import db
from models import LogisticRequest, LogisticRequestService, LogisticRequestStatus
from utils.aggregation import get_active_service, recalculate_totals
from utils.errors import NotFoundError, PreconditionError, ValidationError, clean_text

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _line_filter(request_id, service_id):
    return (
        LogisticRequestService.logistic_request_id == request_id,
        LogisticRequestService.transport_service_id == service_id,
    )


def find_draft(creator_id):
    return (
        LogisticRequest.active()
        .filter_by(creator_id=creator_id, status=LogisticRequestStatus.DRAFT)
        .order_by(LogisticRequest.id.desc())
        .first()
    )


def get_or_create_draft(creator_id) -> LogisticRequest:
    draft = find_draft(creator_id)
    if draft:
        return draft

    draft = LogisticRequest(creator_id=creator_id, status=LogisticRequestStatus.DRAFT)
    db.session.add(draft)
    db.session.commit()
    return draft


def lock_draft(request_id) -> LogisticRequest:
    logistic_request = db.session.execute(
        select(LogisticRequest)
        .where(LogisticRequest.id == request_id, LogisticRequest.deleted_at.is_(None))
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if logistic_request is None:
        raise NotFoundError("logistic request not found")
    if logistic_request.status != LogisticRequestStatus.DRAFT:
        raise PreconditionError("logistic request is not a draft")
    return logistic_request


def _upsert_line(request_id, service_id):
    dialect = db.engine.dialect.name
    insert = _INSERT_BY_DIALECT.get(dialect)
    if insert is None:
        raise RuntimeError(f"Draft upsert is not supported on {dialect}")

    next_sort_order = (
        select(func.coalesce(func.max(LogisticRequestService.sort_order) + 1, 0))
        .where(LogisticRequestService.logistic_request_id == request_id)
        .correlate(None)
        .scalar_subquery()
    )
    statement = insert(LogisticRequestService).values(
        logistic_request_id=request_id,
        transport_service_id=service_id,
        quantity=1,
        sort_order=next_sort_order,
        cost=0,
        days=0,
    )
    statement = statement.on_conflict_do_update(
        index_elements=["logistic_request_id", "transport_service_id"],
        set_={"quantity": LogisticRequestService.quantity + 1},
    )
    db.session.execute(statement)


def _refresh_totals(logistic_request):
    db.session.flush()
    # Core statements bypass the identity map, reload lines before pricing them
    db.session.expire_all()
    recalculate_totals(logistic_request)


def add_service_to_draft(request_id, service_id) -> int:
    """Add one unit of ``service_id`` to the draft; returns the draft's quantity sum."""
    try:
        logistic_request = lock_draft(request_id)
        get_active_service(service_id)
        _upsert_line(request_id, service_id)
        _refresh_totals(logistic_request)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return draft_quantity_sum(request_id)


def remove_service_from_draft(request_id, service_id) -> int:
    """Take one unit of ``service_id`` off the draft; the row goes at zero."""
    try:
        logistic_request = lock_draft(request_id)

        decremented = db.session.execute(
            update(LogisticRequestService)
            .where(*_line_filter(request_id, service_id), LogisticRequestService.quantity > 1)
            .values(quantity=LogisticRequestService.quantity - 1)
            .execution_options(synchronize_session=False)
        ).rowcount

        if not decremented:
            deleted = db.session.execute(
                delete(LogisticRequestService)
                .where(*_line_filter(request_id, service_id))
                .execution_options(synchronize_session=False)
            ).rowcount
            if not deleted:
                raise NotFoundError("service is not in the logistic request")

        _refresh_totals(logistic_request)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return draft_quantity_sum(request_id)


def update_draft_line(request_id, service_id, quantity, sort_order=None, comment=None) -> LogisticRequestService:
    if quantity < 1:
        raise ValidationError("quantity must be at least 1")

    try:
        logistic_request = lock_draft(request_id)
        line = LogisticRequestService.query.filter(*_line_filter(request_id, service_id)).first()
        if not line:
            raise NotFoundError("service is not in the logistic request")

        line.quantity = quantity
        if sort_order is not None:
            line.sort_order = sort_order
        if comment is not None:
            line.comment = clean_text(comment, "comment")

        _refresh_totals(logistic_request)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return line


def clear_draft(creator_id) -> int:
    """Drop every line of the user's draft and return the draft id."""
    draft = get_or_create_draft(creator_id)
    try:
        db.session.execute(
            delete(LogisticRequestService)
            .where(LogisticRequestService.logistic_request_id == draft.id)
            .execution_options(synchronize_session=False)
        )
        _refresh_totals(draft)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return draft.id


def draft_quantity_sum(request_id) -> int:
    total = db.session.execute(
        select(func.coalesce(func.sum(LogisticRequestService.quantity), 0))
        .where(LogisticRequestService.logistic_request_id == request_id)
    ).scalar_one()
    return int(total)
