from conftest import auth, checkin_body, create_host, login, register_admin
from vms_api.models import Visit


def _check_in(client, token, **kwargs):
    resp = client.post("/api/visits", json=checkin_body(**kwargs), headers=auth(token))
    assert resp.status_code == 201, resp.text
    return resp.json()["visitId"]


def test_host_checks_out_own_visit(client, acme, db_session):
    visit_id = _check_in(client, acme["bob_token"])

    resp = client.put(f"/api/visits/{visit_id}/checkout", headers=auth(acme["bob_token"]))

    assert resp.status_code == 200
    assert resp.json() == {"message": "Check-out successful."}
    assert db_session.get(Visit, visit_id).check_out_time is not None


def test_second_checkout_reports_not_found_and_keeps_first_timestamp(client, acme, db_session):
    visit_id = _check_in(client, acme["bob_token"])
    client.put(f"/api/visits/{visit_id}/checkout", headers=auth(acme["bob_token"]))
    first_checkout = db_session.get(Visit, visit_id).check_out_time
    db_session.close()

    again = client.put(f"/api/visits/{visit_id}/checkout", headers=auth(acme["admin_token"]))

    assert again.status_code == 404
    assert again.json()["message"] == "Visit not found or visitor already checked out."
    assert db_session.get(Visit, visit_id).check_out_time == first_checkout


def test_host_cannot_check_out_someone_elses_visit(client, acme):
    create_host(client, acme["admin_token"], "carol@acme.com", "Carol")
    carol_token = login(client, "carol@acme.com")
    visit_id = _check_in(client, acme["bob_token"])

    resp = client.put(f"/api/visits/{visit_id}/checkout", headers=auth(carol_token))

    assert resp.status_code == 403
    assert resp.json()["message"] == "Hosts can only check out their own visitors."


def test_admin_checks_out_visit_in_own_company(client, acme):
    visit_id = _check_in(client, acme["bob_token"])

    resp = client.put(f"/api/visits/{visit_id}/checkout", headers=auth(acme["admin_token"]))

    assert resp.status_code == 200


def test_admin_cannot_check_out_visit_of_other_company(client, mailer, acme, db_session):
    globex_admin = register_admin(client, mailer, "admin@globex.com", "Globex")
    visit_id = _check_in(client, acme["bob_token"])

    resp = client.put(f"/api/visits/{visit_id}/checkout", headers=auth(globex_admin))

    assert resp.status_code == 404
    assert db_session.get(Visit, visit_id).check_out_time is None


def test_checkout_of_unknown_visit(client, acme):
    assert client.put("/api/visits/999/checkout", headers=auth(acme["admin_token"])).status_code == 404
    assert client.put("/api/visits/999/checkout", headers=auth(acme["bob_token"])).status_code == 403
