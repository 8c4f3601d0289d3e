"""
Liveness endpoints and common response headers.
"""


def test_ping(client):
    assert client.get("/ping").json() == {"pong": True}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_health_detailed_without_redis(client):
    body = client.get("/health/detailed").json()
    assert body["checks"]["database"]["status"] == "healthy"
    assert body["checks"]["redis"]["status"] != "healthy"


def test_security_headers(client):
    response = client.get("/ping")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
