def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["service"] == "labtrack-maintenance"


def test_readiness_check(client):
    response = client.get("/readiness")
    assert response.status_code == 200
    assert response.json()["database"] == "connected"


def test_unknown_route_uses_standard_error_body(client):
    response = client.get("/nope")
    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["error_code"] == "HTTP_ERROR"
    assert body["request_id"] == response.headers["X-Request-ID"]
