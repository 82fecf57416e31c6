from conftest import auth, checkin_body, create_host, login, register_admin


def test_acme_visit_lifecycle(client, mailer, db_session):
    admin_token = register_admin(client, mailer, "admin@acme.com", "Acme")
    create_host(client, admin_token, "bob@acme.com", "Bob")
    create_host(client, admin_token, "carol@acme.com", "Carol")
    bob_token = login(client, "bob@acme.com")

    first = client.post("/api/visits", json=checkin_body(), headers=auth(bob_token))
    assert first.status_code == 201
    visit_id = first.json()["visitId"]

    for token, host_name in ((bob_token, "Bob"), (admin_token, "Carol")):
        again = client.post("/api/visits", json=checkin_body(host_name=host_name), headers=auth(token))
        assert again.status_code == 409

    checkout = client.put(f"/api/visits/{visit_id}/checkout", headers=auth(bob_token))
    assert checkout.status_code == 200

    log = client.get("/api/visits", headers=auth(admin_token)).json()
    assert [row["id"] for row in log] == [visit_id]
    assert log[0]["check_out_time"] is not None

    after = client.post("/api/visits", json=checkin_body(host_name="Carol"), headers=auth(admin_token))
    assert after.status_code == 201
    assert after.json()["visitId"] != visit_id


def test_health_check(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json() == {"message": "Healthy"}
