def test_health_check_returns_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_ping_is_served_under_api_v1(client):
    r = client.get("/api/v1/ping")
    assert r.status_code == 200
    assert r.json() == {"ping": "pong"}
