from models import LogisticRequest, LogisticRequestStatus

ROUTE = {"from_city": "Москва", "to_city": "Санкт-Петербург"}
CARGO = {"length": 1, "width": 1, "height": 1, "weight": 100}


def create_request(client, headers, services, **route):
    items = [{**ROUTE, **CARGO, **route, "service_id": service.id} for service in services]
    return client.post("/api/logistic-requests", headers=headers, json={"services": items})


def formed_request(client, user, services, auth_headers):
    headers = auth_headers(user)
    client.post(f"/api/logistic-requests/draft/services/{services[0].id}", headers=headers)
    draft_id = client.get("/api/logistic-requests/draft", headers=headers).get_json()["request_id"]
    response = client.put(f"/api/logistic-requests/{draft_id}/form", headers=headers, json=dict(ROUTE, **CARGO))
    assert response.status_code == 200
    return draft_id


def test_health(client):
    assert client.get("/").get_json()["status"] == "ok"


def test_quote_is_public(client, services):
    response = client.post("/api/logistic-requests/quote", json={**ROUTE, **CARGO, "service_id": services[0].id})

    assert response.status_code == 200
    body = response.get_json()
    assert body["total_cost"] == 2202.5
    assert body["delivery_days"] == 5
    assert body["distance"] == 635


def test_quote_errors(client, services):
    response = client.post("/api/logistic-requests/quote", json={**ROUTE, **CARGO, "service_id": 999})
    assert response.status_code == 404
    assert response.get_json()["error"] == "transport type not found"

    response = client.post(
        "/api/logistic-requests/quote", json={**ROUTE, **CARGO, "service_id": services[0].id, "weight": -1}
    )
    assert response.status_code == 400


def test_service_catalogue(client, services, manager, buyer, auth_headers):
    response = client.get("/api/transport-services", query_string={"search": "ура"})
    assert [s["name"] for s in response.get_json()["transport_services"]] == ["Фура"]

    response = client.get("/api/transport-services?minPrice=600")
    assert len(response.get_json()["transport_services"]) == 2

    payload = {"name": "Авиа", "price": "30000", "delivery_days": 1, "delivery_type": "avia"}
    assert client.post("/api/transport-services", headers=auth_headers(buyer), json=payload).status_code == 403

    response = client.post("/api/transport-services", headers=auth_headers(manager), json=payload)
    assert response.status_code == 201
    service_id = response.get_json()["service"]["id"]

    response = client.post("/api/transport-services/search", json={"transport_type": "avia"})
    assert response.get_json()["count"] == 1

    response = client.delete(f"/api/transport-services/{service_id}", headers=auth_headers(manager))
    assert response.status_code == 200
    assert client.get(f"/api/transport-services/{service_id}").status_code == 404


def test_create_request(client, services, buyer, auth_headers):
    response = create_request(client, auth_headers(buyer), services[:2])

    assert response.status_code == 201
    body = response.get_json()
    assert body["creator_id"] == buyer.id
    assert body["logistic_request"]["status"] == "draft"
    assert len(body["logistic_request"]["services"]) == 2


def test_create_request_rejects_bad_items(client, services, buyer, auth_headers):
    headers = auth_headers(buyer)

    response = client.post("/api/logistic-requests", headers=headers, json={"services": []})
    assert response.status_code == 400
    assert response.get_json()["error"] == "no items provided"

    response = create_request(client, headers, services, weight=0)
    assert response.status_code == 400
    assert LogisticRequest.query.count() == 0


def test_requests_require_token(client, services):
    response = create_request(client, {}, services)
    assert response.status_code == 401


def test_invalid_token_is_rejected(client, services):
    response = client.get("/api/logistic-requests", headers={"Authorization": "Bearer nonsense"})
    assert response.status_code == 401


def test_draft_cart_flow(client, services, buyer, auth_headers):
    headers = auth_headers(buyer)
    url = f"/api/logistic-requests/draft/services/{services[0].id}"

    assert client.post(url, headers=headers).get_json()["count"] == 1
    assert client.post(url, headers=headers).get_json()["count"] == 2
    assert client.get("/api/logistic-requests/draft", headers=headers).get_json()["count"] == 2
    assert client.delete(url, headers=headers).get_json()["count"] == 1
    assert client.delete("/api/logistic-requests/draft", headers=headers).get_json()["count"] == 0
    assert client.delete(url, headers=headers).status_code == 404


def test_buyers_only_list_their_own_requests(client, services, buyer, other_buyer, manager, auth_headers):
    mine = formed_request(client, buyer, services, auth_headers)
    theirs = formed_request(client, other_buyer, services, auth_headers)

    response = client.get("/api/logistic-requests", headers=auth_headers(buyer))
    assert [r["id"] for r in response.get_json()["logistic_requests"]] == [mine]

    response = client.get("/api/logistic-requests", headers=auth_headers(manager))
    assert {r["id"] for r in response.get_json()["logistic_requests"]} == {mine, theirs}

    assert client.get(f"/api/logistic-requests/{theirs}", headers=auth_headers(buyer)).status_code == 403
    assert client.get(f"/api/logistic-requests/{theirs}", headers=auth_headers(manager)).status_code == 200


def test_buyer_cannot_complete(client, services, buyer, auth_headers):
    request_id = formed_request(client, buyer, services, auth_headers)

    response = client.put(
        f"/api/logistic-requests/{request_id}/complete", headers=auth_headers(buyer), json={"status": "completed"}
    )
    assert response.status_code == 403
    assert response.get_json()["required_action"] == "moderate_request"


def test_manager_completes_request(client, services, buyer, manager, auth_headers):
    request_id = formed_request(client, buyer, services, auth_headers)
    url = f"/api/logistic-requests/{request_id}/complete"

    response = client.put(url, headers=auth_headers(manager), json={"status": "approved"})
    assert response.status_code == 400

    response = client.put(url, headers=auth_headers(manager), json={"status": "completed"})
    assert response.status_code == 200
    body = response.get_json()["logistic_request"]
    assert body["status"] == "completed"
    assert body["moderator"]["id"] == manager.id
    assert body["total_cost"] == 2202.5

    response = client.put(url, headers=auth_headers(manager), json={"status": "rejected"})
    assert response.status_code == 400
    assert LogisticRequest.query.filter_by(id=request_id).one().status == LogisticRequestStatus.COMPLETED


def test_delete_rules(client, services, buyer, other_buyer, admin, auth_headers):
    formed = formed_request(client, buyer, services, auth_headers)
    assert client.delete(f"/api/logistic-requests/{formed}", headers=auth_headers(buyer)).status_code == 403

    headers = auth_headers(other_buyer)
    draft_id = client.get("/api/logistic-requests/draft", headers=headers).get_json()["request_id"]
    assert client.delete(f"/api/logistic-requests/{draft_id}", headers=auth_headers(buyer)).status_code == 403
    assert client.delete(f"/api/logistic-requests/{draft_id}", headers=headers).status_code == 200

    assert client.delete(f"/api/logistic-requests/{formed}", headers=auth_headers(admin)).status_code == 200
    assert client.get(f"/api/logistic-requests/{formed}", headers=auth_headers(admin)).status_code == 404


def test_update_line_requires_owner(client, services, buyer, other_buyer, auth_headers):
    headers = auth_headers(buyer)
    client.post(f"/api/logistic-requests/draft/services/{services[0].id}", headers=headers)
    draft_id = client.get("/api/logistic-requests/draft", headers=headers).get_json()["request_id"]
    url = f"/api/logistic-requests/{draft_id}/services/{services[0].id}"

    assert client.put(url, headers=auth_headers(other_buyer), json={"quantity": 3}).status_code == 403
    assert client.put(url, headers=headers, json={"quantity": "many"}).status_code == 400
    assert client.put(url, headers=headers, json={"quantity": 3, "comment": "паллеты"}).status_code == 200
    assert client.get("/api/logistic-requests/draft", headers=headers).get_json()["count"] == 3


def test_quote_rejects_oversized_cargo(client, services):
    response = client.post(
        "/api/logistic-requests/quote", json={**ROUTE, **CARGO, "service_id": services[0].id, "length": 1e30}
    )
    assert response.status_code == 400
    assert "must not exceed" in response.get_json()["error"]


def test_non_text_city_is_a_validation_error(client, services, buyer, auth_headers):
    response = create_request(client, auth_headers(buyer), services[:1], from_city=123)

    assert response.status_code == 400
    assert response.get_json()["error"] == "from_city of item 0 must be a string"
    assert LogisticRequest.query.count() == 0


def test_cart_and_created_request_share_the_draft(client, services, buyer, auth_headers):
    headers = auth_headers(buyer)
    client.post(f"/api/logistic-requests/draft/services/{services[0].id}", headers=headers)
    draft_id = client.get("/api/logistic-requests/draft", headers=headers).get_json()["request_id"]

    response = create_request(client, headers, services[1:])
    assert response.status_code == 201
    assert response.get_json()["request_id"] == draft_id

    icon = client.get("/api/logistic-requests/draft", headers=headers).get_json()
    assert icon == {"status": "ok", "request_id": draft_id, "count": 3}


def test_service_fields_must_be_text(client, services, manager, auth_headers):
    response = client.post(
        "/api/transport-services", headers=auth_headers(manager), json={"name": 7, "price": 10, "delivery_days": 1}
    )
    assert response.status_code == 400
    assert response.get_json()["error"] == "name must be a string"

    response = client.put(
        f"/api/transport-services/{services[0].id}", headers=auth_headers(manager), json={"description": {"a": 1}}
    )
    assert response.status_code == 400

    response = client.post("/api/transport-services/search", json={"transport_type": 5})
    assert response.status_code == 400


def test_auth_fields_must_be_text(client, buyer, auth_headers):
    response = client.post("/api/users/register", json={
        "login": 12345, "email": "a@example.com", "password": "secret123", "name": "A",
    })
    assert response.status_code == 400
    assert response.get_json()["error"] == "login must be a string"

    response = client.post("/api/users/login", json={"login": "buyer", "password": 123456})
    assert response.status_code == 400

    response = client.put("/api/users/profile", headers=auth_headers(buyer), json={"name": ["x"]})
    assert response.status_code == 400
