"""Status transitions of a logistic request.

draft -> formed (by its creator) -> completed | rejected (by a moderator).
Every transition re-reads the row under ``SELECT ... FOR UPDATE`` and checks
the current status in the same transaction as the write.
"""

import math
from datetime import datetime, timezone

from sqlalchemy import select

from extensions import db
from models import LogisticRequest, LogisticRequestStatus
from utils.aggregation import recalculate_totals
from utils.delivery import MAX_CARGO_VALUE
from utils.errors import NotFoundError, PermissionDenied, PreconditionError, ValidationError, clean_text

CARGO_FIELDS = ("weight", "length", "width", "height")


def _lock_request(request_id) -> LogisticRequest:
    logistic_request = db.session.execute(
        select(LogisticRequest)
        .where(LogisticRequest.id == request_id, LogisticRequest.deleted_at.is_(None))
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if logistic_request is None:
        raise NotFoundError("logistic request not found")
    return logistic_request


def _positive(value, name):
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be numeric")
    if not math.isfinite(number) or number <= 0:
        raise ValidationError(f"{name} must be greater than 0")
    if number > MAX_CARGO_VALUE:
        raise ValidationError(f"{name} must not exceed {MAX_CARGO_VALUE}")
    return number


def form_request(request_id, creator_id, from_city, to_city, weight, length, width, height) -> LogisticRequest:
    from_city = clean_text(from_city, "from_city")
    to_city = clean_text(to_city, "to_city")
    if not from_city or not to_city:
        raise ValidationError("from_city and to_city are required")

    cargo = {
        "weight": _positive(weight, "weight"),
        "length": _positive(length, "length"),
        "width": _positive(width, "width"),
        "height": _positive(height, "height"),
    }

    try:
        logistic_request = _lock_request(request_id)
        if logistic_request.status != LogisticRequestStatus.DRAFT:
            raise PreconditionError("only draft logistic requests can be formed")
        if logistic_request.creator_id != creator_id:
            raise PermissionDenied("only the creator can form a logistic request")
        if not logistic_request.services:
            raise PreconditionError("logistic request has no services")

        logistic_request.from_city = from_city
        logistic_request.to_city = to_city
        for field, value in cargo.items():
            setattr(logistic_request, field, value)

        recalculate_totals(logistic_request)
        logistic_request.status = LogisticRequestStatus.FORMED
        logistic_request.formed_at = datetime.now(timezone.utc)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return logistic_request


def parse_final_status(value) -> LogisticRequestStatus:
    try:
        status = LogisticRequestStatus(value)
    except ValueError:
        status = None
    if status not in (LogisticRequestStatus.COMPLETED, LogisticRequestStatus.REJECTED):
        raise ValidationError("invalid status. allowed: completed, rejected")
    return status


def complete_request(request_id, status, moderator_id) -> LogisticRequest:
    """Close a formed request as completed or rejected. Irreversible."""
    status = parse_final_status(status.value if isinstance(status, LogisticRequestStatus) else status)

    try:
        logistic_request = _lock_request(request_id)
        if logistic_request.status != LogisticRequestStatus.FORMED:
            raise PreconditionError("only formed logistic requests can be completed or rejected")

        if status == LogisticRequestStatus.COMPLETED:
            recalculate_totals(logistic_request)

        logistic_request.status = status
        logistic_request.moderator_id = moderator_id
        logistic_request.completed_at = datetime.now(timezone.utc)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return logistic_request


def update_draft_request(request_id, creator_id, changes) -> LogisticRequest:
    """Patch route and cargo of a draft. Blank or non-positive values are ignored."""
    try:
        logistic_request = _lock_request(request_id)
        if logistic_request.status != LogisticRequestStatus.DRAFT:
            raise PreconditionError("can only update draft logistic requests")
        if logistic_request.creator_id != creator_id:
            raise PermissionDenied("only the creator can update a logistic request")

        for field in ("from_city", "to_city"):
            value = clean_text(changes.get(field), field)
            if value:
                setattr(logistic_request, field, value)

        for field in CARGO_FIELDS:
            if changes.get(field) is None:
                continue
            try:
                value = float(changes[field])
            except (TypeError, ValueError):
                raise ValidationError(f"{field} must be numeric")
            if value > MAX_CARGO_VALUE:
                raise ValidationError(f"{field} must not exceed {MAX_CARGO_VALUE}")
            if value > 0:
                setattr(logistic_request, field, value)

        recalculate_totals(logistic_request)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return logistic_request


def delete_request(request_id) -> None:
    try:
        logistic_request = _lock_request(request_id)
        logistic_request.deleted_at = datetime.now(timezone.utc)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
