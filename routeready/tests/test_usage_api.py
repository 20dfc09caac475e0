def test_fresh_anonymous_usage(client):
    resp = client.get("/api/usage", headers={"X-Session-Id": "anon-usage-session"})
    assert resp.status_code == 200
    body = resp.json()
    assert body == {
        "identity_kind": "anonymous",
        "usage_count": 0,
        "free_limit": 5,
        "remaining_uses": 5,
        "has_paid": False,
        "state": "unauthenticated_under_limit",
        "next_decision": "allowed",
    }


def test_authenticated_usage_creates_profile(client, auth_headers):
    from routeready.features.users.service import get_profile

    resp = client.get("/api/usage", headers=auth_headers("user_usage", "u@example.com"))
    assert resp.status_code == 200
    assert resp.json()["identity_kind"] == "authenticated"
    assert get_profile("user_usage")["email"] == "u@example.com"


def test_calculator_endpoint(client):
    resp = client.get("/api/calculator", params={"distance_miles": 480})
    assert resp.status_code == 200
    body = resp.json()
    assert body["calculation"]["recommendation"] == "flight"
    assert body["formatted"]["total_travel_time"] == "9h 30m"


def test_calculator_rejects_negative(client):
    resp = client.get("/api/calculator", params={"distance_miles": -5})
    assert resp.status_code == 422
