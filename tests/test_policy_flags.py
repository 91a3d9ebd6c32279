from storefront import config


def place_order(client, auth):
    r = client.post("/api/orders", json={"userId": auth["id"], "totalAmount": 1}, headers=auth["headers"])
    assert r.status_code == 200
    return r.json()["id"]


def test_ownership_enforced_blocks_other_users(client, user_auth, other_user_auth):
    oid = place_order(client, other_user_auth)

    config.set_enforce_ownership(True)
    r = client.get(f"/api/orders/user/{other_user_auth['id']}", headers=user_auth["headers"])
    assert r.status_code == 403
    r = client.get(f"/api/orders/{oid}", headers=user_auth["headers"])
    assert r.status_code == 403


def test_ownership_enforced_allows_owner_and_admin(client, user_auth, admin_auth):
    oid = place_order(client, user_auth)

    config.set_enforce_ownership(True)
    assert client.get(f"/api/orders/user/{user_auth['id']}", headers=user_auth["headers"]).status_code == 200
    assert client.get(f"/api/orders/{oid}", headers=user_auth["headers"]).status_code == 200
    assert client.get(f"/api/orders/user/{user_auth['id']}", headers=admin_auth["headers"]).status_code == 200
    assert client.get(f"/api/orders/{oid}", headers=admin_auth["headers"]).status_code == 200


def test_ownership_toggle_round_trip(client, user_auth, other_user_auth):
    place_order(client, other_user_auth)
    path = f"/api/orders/user/{other_user_auth['id']}"

    config.set_enforce_ownership(True)
    assert config.is_ownership_enforced()
    assert client.get(path, headers=user_auth["headers"]).status_code == 403

    config.set_enforce_ownership(False)
    assert client.get(path, headers=user_auth["headers"]).status_code == 200


def test_strict_transitions(client, user_auth, admin_auth):
    oid = place_order(client, user_auth)
    h = admin_auth["headers"]
    config.set_strict_status_transitions(True)

    r = client.put(f"/api/orders/{oid}/status", params={"status": "SHIPPED"}, headers=h)
    assert r.status_code == 400
    assert "unknown status" in r.json()["detail"]

    # re-applying the current status is allowed
    assert client.put(f"/api/orders/{oid}/status", params={"status": "PENDING"}, headers=h).status_code == 200

    r = client.put(f"/api/orders/{oid}/status", params={"status": "COMPLETED"}, headers=h)
    assert r.status_code == 200
    assert r.json()["status"] == "COMPLETED"

    r = client.put(f"/api/orders/{oid}/status", params={"status": "PENDING"}, headers=h)
    assert r.status_code == 400
    assert client.get(f"/api/orders/{oid}", headers=h).json()["status"] == "COMPLETED"


def test_permissive_transitions_by_default(client, user_auth, admin_auth):
    oid = place_order(client, user_auth)
    h = admin_auth["headers"]
    assert not config.is_strict_status_transitions()

    client.put(f"/api/orders/{oid}/status", params={"status": "COMPLETED"}, headers=h)
    r = client.put(f"/api/orders/{oid}/status", params={"status": "PENDING"}, headers=h)
    assert r.status_code == 200
    r = client.put(f"/api/orders/{oid}/status", params={"status": "SHIPPED"}, headers=h)
    assert r.status_code == 200
