"""Build logistic requests out of quoted line items and keep their totals honest."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Sequence

from flask import current_app
from sqlalchemy import select

from extensions import db
from models import LogisticRequest, LogisticRequestService, LogisticRequestStatus, TransportService
from utils.delivery import calculate_delivery
from utils.distances import normalise_city
from utils.errors import NotFoundError, ValidationError, clean_text

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class CargoItem:
    service_id: int
    from_city: str
    to_city: str
    length: Any
    width: Any
    height: Any
    weight: Any

    @property
    def route(self):
        return normalise_city(self.from_city), normalise_city(self.to_city)


def parse_items(raw_items) -> List[CargoItem]:
    if not isinstance(raw_items, list):
        raise ValidationError("services must be provided as a list")

    items = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"Item at position {index} is invalid")

        try:
            service_id = int(raw.get("service_id"))
        except (TypeError, ValueError):
            raise ValidationError(f"service_id must be an integer for item {index}")

        items.append(CargoItem(
            service_id=service_id,
            from_city=clean_text(raw.get("from_city"), f"from_city of item {index}"),
            to_city=clean_text(raw.get("to_city"), f"to_city of item {index}"),
            length=raw.get("length"),
            width=raw.get("width"),
            height=raw.get("height"),
            weight=raw.get("weight"),
        ))
    return items


def get_active_service(service_id):
    service = TransportService.active().filter_by(id=service_id).first()
    if not service:
        raise NotFoundError(f"service {service_id} not found")
    return service


def lock_open_draft(creator_id):
    """Latest live draft of ``creator_id`` read ``FOR UPDATE``, or ``None``."""
    return db.session.execute(
        select(LogisticRequest)
        .where(
            LogisticRequest.creator_id == creator_id,
            LogisticRequest.status == LogisticRequestStatus.DRAFT,
            LogisticRequest.deleted_at.is_(None),
        )
        .order_by(LogisticRequest.id.desc())
        .limit(1)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def create_cargo_request(items: Sequence[CargoItem], creator_id: int) -> int:
    """Quote ``items`` into the user's draft, all or nothing.

    A user has a single live draft: when one exists the items are merged into
    it, otherwise a new draft is created. The draft takes the first item's
    route and the summed cargo of the items. Lines of the same service merge
    (quantity +1, cost added, days max); totals are the sum of line costs and
    the max of line days.
    """
    if not items:
        raise ValidationError("no items provided")

    first = items[0]
    if any(item.route != first.route for item in items[1:]):
        current_app.logger.warning(
            "Cargo request for user %s mixes routes; keeping %s -> %s on the request",
            creator_id, first.from_city, first.to_city,
        )

    try:
        logistic_request = lock_open_draft(creator_id)
        if logistic_request is None:
            logistic_request = LogisticRequest(creator_id=creator_id, status=LogisticRequestStatus.DRAFT)
            db.session.add(logistic_request)
        else:
            current_app.logger.debug("Merging cargo items into draft %s", logistic_request.id)

        logistic_request.from_city = first.from_city
        logistic_request.to_city = first.to_city

        lines: Dict[int, LogisticRequestService] = {
            line.transport_service_id: line for line in logistic_request.services
        }
        next_sort_order = max((line.sort_order for line in lines.values()), default=-1) + 1
        totals = {"weight": 0.0, "length": 0.0, "width": 0.0, "height": 0.0}

        for item in items:
            service = get_active_service(item.service_id)
            quote = calculate_delivery(
                service, item.from_city, item.to_city, item.length, item.width, item.height, item.weight
            )
            if not quote.is_valid:
                raise ValidationError(quote.error_message)

            line = lines.get(service.id)
            if line is None:
                line = LogisticRequestService(
                    transport_service_id=service.id,
                    quantity=1,
                    sort_order=next_sort_order,
                    cost=quote.total_cost,
                    days=quote.delivery_days,
                )
                logistic_request.services.append(line)
                lines[service.id] = line
                next_sort_order += 1
            else:
                line.quantity += 1
                line.cost = Decimal(line.cost or 0) + quote.total_cost
                line.days = max(line.days or 0, quote.delivery_days)

            for field in totals:
                totals[field] += float(getattr(item, field))

        logistic_request.total_cost = sum((Decimal(line.cost or 0) for line in lines.values()), ZERO)
        logistic_request.total_days = max(line.days or 0 for line in lines.values())
        for field, value in totals.items():
            setattr(logistic_request, field, value)

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Stored cargo request %s for user %s with %d item(s)", logistic_request.id, creator_id, len(items)
    )
    return logistic_request.id


def quote_line(line: LogisticRequestService, logistic_request: LogisticRequest):
    return calculate_delivery(
        line.transport_service,
        logistic_request.from_city,
        logistic_request.to_city,
        logistic_request.length,
        logistic_request.width,
        logistic_request.height,
        logistic_request.weight,
    )


def recalculate_totals(logistic_request: LogisticRequest) -> None:
    """Requote every line against the request cargo and refold the totals.

    Lines of a request without a complete route and cargo are priced at zero.
    Does not commit.
    """
    priced = logistic_request.has_cargo()

    for line in logistic_request.services:
        quote = quote_line(line, logistic_request) if priced else None
        if quote is not None and quote.is_valid:
            line.cost = quote.total_cost * line.quantity
            line.days = quote.delivery_days
        else:
            line.cost = ZERO
            line.days = 0

    logistic_request.total_cost = sum((Decimal(line.cost) for line in logistic_request.services), ZERO)
    logistic_request.total_days = max((line.days for line in logistic_request.services), default=0)
