"""
Tests for DEMO_MODE feature flag.

Ensures demo endpoints are blocked when DEMO_MODE=false and run the real
conversation handler when it is on.
"""

from app.constants.steps import STEP_COLLECTING_INFO, STEP_WELCOME


def test_demo_endpoint_blocked_when_demo_mode_false(client, test_settings):
    test_settings.demo_mode = False
    response = client.post("/demo/conversation", json={"phone": "+56911112222", "message": "hola"})
    assert response.status_code == 404
    assert "Not found" in response.json()["detail"]


def test_demo_conversation_runs_the_flow(client, test_settings, store, messenger):
    test_settings.demo_mode = True

    response = client.post("/demo/conversation", json={"phone": "+56 9 1111 2222", "message": "hola"})
    assert response.status_code == 200
    data = response.json()
    assert data["result"]["status"] == "welcome_sent"
    assert data["state"]["user_phone"] == "56911112222"
    assert data["state"]["current_step"] == STEP_WELCOME

    response = client.post("/demo/conversation", json={"phone": "56911112222", "message": "Restaurante"})
    data = response.json()
    assert data["result"]["field"] == "comuna"
    assert data["state"]["current_step"] == STEP_COLLECTING_INFO
    assert data["state"]["service_type"] == "Restaurante"
    assert messenger.last["to"] == "56911112222"


def test_demo_conversation_requires_phone(client, test_settings):
    test_settings.demo_mode = True
    response = client.post("/demo/conversation", json={"phone": " + ", "message": "hola"})
    assert response.status_code == 400
