from decimal import Decimal

import pytest

from models import LogisticRequest, LogisticRequestService, LogisticRequestStatus
from utils.aggregation import CargoItem, create_cargo_request, parse_items
from utils.drafts import add_service_to_draft, draft_quantity_sum, find_draft, get_or_create_draft
from utils.errors import NotFoundError, ValidationError
from utils.moderation import form_request


def item(service, from_city="Москва", to_city="Санкт-Петербург", length=1, width=1, height=1, weight=100):
    return CargoItem(
        service_id=service.id,
        from_city=from_city,
        to_city=to_city,
        length=length,
        width=width,
        height=height,
        weight=weight,
    )


def stored_counts():
    return LogisticRequest.query.count(), LogisticRequestService.query.count()


def test_totals_fold_item_quotes(db, services, buyer):
    fura, gazel, reefer = services
    items = [
        item(fura),
        item(gazel, "Москва", "Казань", length=2, weight=1500),
        item(reefer, "Екатеринбург", "Челябинск", width=2, height=0.5, weight=10),
    ]

    request_id = create_cargo_request(items, buyer.id)

    logistic_request = db.session.get(LogisticRequest, request_id)
    assert logistic_request.status == LogisticRequestStatus.DRAFT
    assert logistic_request.creator_id == buyer.id
    assert [line.cost for line in logistic_request.services] == [
        Decimal("2202.50"), Decimal("4830.00"), Decimal("2370.00"),
    ]
    assert [line.days for line in logistic_request.services] == [5, 4, 8]
    assert logistic_request.total_cost == Decimal("9402.50")
    assert logistic_request.total_days == 8
    assert logistic_request.weight == pytest.approx(1610)
    assert logistic_request.length == pytest.approx(4)
    assert logistic_request.width == pytest.approx(4)
    assert logistic_request.height == pytest.approx(2.5)


def test_first_item_route_is_kept(db, services, buyer):
    fura, gazel, _ = services
    request_id = create_cargo_request([item(fura), item(gazel, "Новосибирск", "Омск")], buyer.id)

    logistic_request = db.session.get(LogisticRequest, request_id)
    assert (logistic_request.from_city, logistic_request.to_city) == ("Москва", "Санкт-Петербург")
    assert logistic_request.total_cost == sum(line.cost for line in logistic_request.services)


def test_repeated_service_is_merged_into_one_line(db, services, buyer):
    fura = services[0]
    request_id = create_cargo_request([item(fura), item(fura, "Тверь", "Омск")], buyer.id)

    lines = LogisticRequestService.query.filter_by(logistic_request_id=request_id).all()
    assert len(lines) == 1
    assert lines[0].quantity == 2
    assert lines[0].cost == Decimal("4202.50")
    assert lines[0].days == 5


def test_empty_item_list_stores_nothing(db, services, buyer):
    with pytest.raises(ValidationError, match="no items provided"):
        create_cargo_request([], buyer.id)
    assert stored_counts() == (0, 0)


def test_invalid_item_rolls_everything_back(db, services, buyer):
    fura, gazel, reefer = services
    items = [item(fura), item(gazel, weight=0), item(reefer)]

    with pytest.raises(ValidationError, match="greater than 0"):
        create_cargo_request(items, buyer.id)
    assert stored_counts() == (0, 0)


def test_unknown_service_rolls_everything_back(db, services, buyer):
    missing = CargoItem(9999, "Москва", "Казань", 1, 1, 1, 1)

    with pytest.raises(NotFoundError, match="service 9999 not found"):
        create_cargo_request([item(services[0]), missing], buyer.id)
    assert stored_counts() == (0, 0)


def test_parse_items_reads_json_payload():
    items = parse_items([
        {"service_id": "3", "from_city": " Москва ", "to_city": "Казань", "length": 1, "width": 2,
         "height": 3, "weight": 4},
    ])
    assert items == [CargoItem(3, "Москва", "Казань", 1, 2, 3, 4)]
    assert items[0].route == ("москва", "казань")


@pytest.mark.parametrize("raw", [
    None,
    {"service_id": 1},
    ["x"],
    [{"service_id": "abc"}],
    [{"service_id": 1, "from_city": 123, "to_city": "Казань"}],
    [{"service_id": 1, "from_city": "Москва", "to_city": ["Казань"]}],
])
def test_parse_items_rejects_malformed_payload(raw):
    with pytest.raises(ValidationError):
        parse_items(raw)


def test_items_are_merged_into_the_open_draft(db, services, buyer):
    fura, gazel, _ = services
    draft = get_or_create_draft(buyer.id)
    add_service_to_draft(draft.id, fura.id)

    request_id = create_cargo_request([item(fura), item(gazel)], buyer.id)

    assert request_id == draft.id
    assert LogisticRequest.query.count() == 1
    assert find_draft(buyer.id).id == draft.id
    assert draft_quantity_sum(draft.id) == 3

    lines = {line.transport_service_id: line for line in db.session.get(LogisticRequest, draft.id).services}
    assert lines[fura.id].quantity == 2
    assert lines[fura.id].cost == Decimal("2202.50")
    assert (lines[fura.id].sort_order, lines[gazel.id].sort_order) == (0, 1)


def test_failed_merge_leaves_the_draft_untouched(db, services, buyer):
    fura, gazel, _ = services
    draft = get_or_create_draft(buyer.id)
    add_service_to_draft(draft.id, fura.id)

    with pytest.raises(ValidationError):
        create_cargo_request([item(gazel), item(fura, weight=-1)], buyer.id)

    assert draft_quantity_sum(draft.id) == 1
    assert db.session.get(LogisticRequest, draft.id).from_city is None


def test_formed_requests_are_not_reused(db, services, buyer):
    first = create_cargo_request([item(services[0])], buyer.id)
    form_request(first, buyer.id, "Москва", "Санкт-Петербург", 100, 1, 1, 1)

    second = create_cargo_request([item(services[1])], buyer.id)
    assert second != first
    assert db.session.get(LogisticRequest, first).status == LogisticRequestStatus.FORMED
