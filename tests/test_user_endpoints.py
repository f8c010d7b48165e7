from sensor_relay.models.device import Device


def test_requires_bearer_token(client):
    assert client.get("/users/me/status").status_code == 401
    assert client.get("/users/me/devices").status_code == 401
    assert client.put("/users/me/devices/d1/token", json={"token": "abc"}).status_code == 401


def test_unknown_token_rejected(client):
    resp = client.get("/users/me/status", headers={"Authorization": "Bearer not-a-real-token"})
    assert resp.status_code == 401


def test_status_created_on_first_request(client, auth_headers):
    resp = client.get("/users/me/status", headers=auth_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["id"] == "user-1"
    assert data["mailDetected"] is False
    assert data["dryerRunning"] is False
    assert data["dryerLastEvent"] is None


def test_reset_mail_flag(client, auth_headers, fake_push):
    client.post("/sendNotification", json={"userId": "user-1", "type": "mail"})
    assert client.get("/users/me/status", headers=auth_headers).json()["mailDetected"] is True

    resp = client.post("/users/me/status/reset-mail", headers=auth_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["mailDetected"] is False
    # the timestamp of the last detection is kept
    assert data["mailLastUpdatedAt"] is not None


def test_register_token_then_listed(client, db_session, auth_headers):
    resp = client.put("/users/me/devices/kitchen/token", json={"token": "fcm-123"}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["deviceId"] == "kitchen"

    devices = client.get("/users/me/devices", headers=auth_headers).json()
    assert len(devices) == 1
    assert devices[0]["deviceId"] == "kitchen"
    assert devices[0]["hasToken"] is True
    assert devices[0]["isActive"] is True
    assert "token" not in devices[0]

    db_session.expire_all()
    row = db_session.query(Device).filter(Device.device_id == "kitchen").one()
    assert row.token == "fcm-123"
    assert row.user_id == "user-1"


def test_reregistering_replaces_token(client, db_session, auth_headers):
    client.put("/users/me/devices/kitchen/token", json={"token": "old"}, headers=auth_headers)
    client.put("/users/me/devices/kitchen/token", json={"token": "new"}, headers=auth_headers)
    db_session.expire_all()
    rows = db_session.query(Device).filter(Device.user_id == "user-1").all()
    assert [r.token for r in rows] == ["new"]


def test_empty_token_rejected(client, auth_headers):
    resp = client.put("/users/me/devices/kitchen/token", json={"token": ""}, headers=auth_headers)
    assert resp.status_code == 422


def test_heartbeat_merges_fields(client, auth_headers):
    client.put("/users/me/devices/garage/token", json={"token": "fcm-1"}, headers=auth_headers)
    resp = client.put(
        "/users/me/devices/garage/heartbeat",
        json={
            "isListening": True,
            "task": "Dryer Notifier",
            "battery": 87,
            "name": "Old iPhone",
            "model": "iPhone",
            "systemVersion": "17.4",
            "bundleId": "com.example.sensorrelay",
        },
        headers=auth_headers,
    )
    assert resp.status_code == 200

    # later heartbeat without the optional fields keeps them
    client.put("/users/me/devices/garage/heartbeat", json={"isListening": False}, headers=auth_headers)

    device = client.get("/users/me/devices", headers=auth_headers).json()[0]
    assert device["isListening"] is False
    assert device["task"] == "Dryer Notifier"
    assert device["battery"] == 87
    assert device["name"] == "Old iPhone"
    assert device["bundleId"] == "com.example.sensorrelay"
    assert device["hasToken"] is True


def test_heartbeat_battery_out_of_range(client, auth_headers):
    resp = client.put(
        "/users/me/devices/garage/heartbeat",
        json={"isListening": True, "battery": 140},
        headers=auth_headers,
    )
    assert resp.status_code == 422


def test_devices_are_per_user(client, auth_headers):
    client.put("/users/me/devices/a/token", json={"token": "t1"}, headers=auth_headers)
    other = {"Authorization": "Bearer mock-user-2-token"}
    assert client.get("/users/me/devices", headers=other).json() == []


def test_registered_device_receives_events(client, auth_headers, fake_push):
    client.put("/users/me/devices/kitchen/token", json={"token": "fcm-xyz"}, headers=auth_headers)
    resp = client.post("/sendNotification", json={"userId": "user-1", "type": "presence"})
    assert resp.json()["successCount"] == 1
    assert fake_push.calls[0]["tokens"] == ["fcm-xyz"]


def test_function_config_not_found(client, auth_headers):
    resp = client.get("/users/me/functions/sound", headers=auth_headers)
    assert resp.status_code == 404


def test_function_config_round_trip(client, auth_headers):
    resp = client.put(
        "/users/me/functions/sound",
        json={
            "useCaseName": "Baby monitor",
            "notificationTitle": "Nursery",
            "notificationBody": "The baby is awake.",
            "threshold": 0.55,
        },
        headers=auth_headers,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["functionName"] == "sound"
    assert data["threshold"] == 0.55
    assert data["updatedAt"] is not None

    fetched = client.get("/users/me/functions/sound", headers=auth_headers).json()
    assert fetched["useCaseName"] == "Baby monitor"
    assert fetched["notificationBody"] == "The baby is awake."


def test_function_config_threshold_is_clamped(client, auth_headers):
    data = client.put("/users/me/functions/sound", json={"threshold": 4}, headers=auth_headers).json()
    assert data["threshold"] == 1.0
    data = client.put("/users/me/functions/sound", json={"threshold": 0}, headers=auth_headers).json()
    assert data["threshold"] == 0.1


def test_function_config_partial_update_keeps_fields(client, auth_headers):
    client.put(
        "/users/me/functions/vibration",
        json={"useCaseName": "Washer", "notificationTitle": "Washer"},
        headers=auth_headers,
    )
    data = client.put(
        "/users/me/functions/vibration",
        json={"notificationBody": "Washer shook"},
        headers=auth_headers,
    ).json()
    assert data["useCaseName"] == "Washer"
    assert data["notificationTitle"] == "Washer"
    assert data["notificationBody"] == "Washer shook"


def test_history_limit_validated(client, auth_headers):
    assert client.get("/users/me/notifications?limit=0", headers=auth_headers).status_code == 422
    assert client.get("/users/me/notifications?limit=51", headers=auth_headers).status_code == 422
    assert client.get("/users/me/notifications?limit=5", headers=auth_headers).json() == []


def test_health_endpoints(client):
    assert client.get("/health/live").json()["status"] == "alive"
    data = client.get("/health").json()
    assert data["services"]["messaging"] == "not_configured"
    assert "X-Correlation-ID" in client.get("/").headers
