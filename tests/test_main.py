"""
Tests for the main application endpoints.
"""
import logging


def test_root_endpoint(client):
    """
    Test the root endpoint returns a welcome message.
    """
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert "message" in data


def test_health_check(client):
    """
    Test the health check endpoint returns a healthy status.
    """
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_request_id_header(client):
    """
    Test the request logging middleware tags every response.
    """
    response = client.get("/health")
    assert "X-Request-ID" in response.headers
    assert "X-Process-Time" in response.headers


def test_unknown_route_returns_404(client):
    response = client.get("/api/v1/nothing-here")
    assert response.status_code == 404


def test_caller_request_id_is_kept(client):
    response = client.get("/health", headers={"X-Request-ID": "checkout-42"})
    assert response.headers["X-Request-ID"] == "checkout-42"


def test_malformed_request_id_is_replaced(client):
    response = client.get("/health", headers={"X-Request-ID": "not an id; drop table"})
    assert response.headers["X-Request-ID"] != "not an id; drop table"
    assert len(response.headers["X-Request-ID"]) == 32


def test_request_log_names_route_and_user(client, caplog, user, user_headers):
    caplog.set_level(logging.INFO, logger="clinic_booking.core.middleware")

    client.get("/api/v1/appointments/999", headers=user_headers)
    client.get("/health")

    assert any(
        "GET /api/v1/appointments/{appointment_id} -> 404" in message and f"for user {user.id}" in message
        for message in caplog.messages
    )
    assert any("GET /health -> 200 for anonymous" in message for message in caplog.messages)
