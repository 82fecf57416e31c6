import datetime

from sqlalchemy import update

from conftest import auth, checkin_body, create_host, login, register_admin
from vms_api.models import Visit

UTC = datetime.timezone.utc


def _check_in(client, token, **kwargs):
    resp = client.post("/api/visits", json=checkin_body(**kwargs), headers=auth(token))
    assert resp.status_code == 201, resp.text
    return resp.json()["visitId"]


def _set_check_in_time(app, visit_id, when):
    with app.state.db.session() as session:
        session.execute(update(Visit).where(Visit.id == visit_id).values(check_in_time=when))
        session.commit()


def _ids(resp):
    assert resp.status_code == 200, resp.text
    return [row["id"] for row in resp.json()]


def _seed(client, app, acme):
    """Three visits: Bob 2023-12-31, Joan 2024-01-01, Bob 2024-01-15."""
    joan = create_host(client, acme["admin_token"], "joan@acme.com", "Joan", "Jones")
    admin = acme["admin_token"]
    old = _check_in(client, admin, email="old@x.com", name="Oscar Old")
    new_year = _check_in(client, admin, email="zed@x.com", name="Zed", host_name=joan["name"])
    later = _check_in(client, admin, email="alice@x.com", name="Alice Smith")
    _set_check_in_time(app, old, datetime.datetime(2023, 12, 31, 23, 30, tzinfo=UTC))
    _set_check_in_time(app, new_year, datetime.datetime(2024, 1, 1, 0, 0, tzinfo=UTC))
    _set_check_in_time(app, later, datetime.datetime(2024, 1, 15, 9, 0, tzinfo=UTC))
    return {"old": old, "new_year": new_year, "later": later, "joan": joan}


def test_admin_sees_company_visits_newest_first(client, app, acme):
    seeded = _seed(client, app, acme)

    resp = client.get("/api/visits", headers=auth(acme["admin_token"]))

    assert _ids(resp) == [seeded["later"], seeded["new_year"], seeded["old"]]
    row = resp.json()[0]
    assert row["visitorName"] == "Alice Smith"
    assert row["visitorEmail"] == "alice@x.com"
    assert row["hostName"] == "Bob"
    assert row["hostCompany"] == "Acme"
    assert row["itemsCarried"] == "Laptop"
    assert row["idCardNumber"] == "ID-42"
    assert row["check_out_time"] is None


def test_date_range_is_inclusive_by_calendar_date(client, app, acme):
    seeded = _seed(client, app, acme)
    headers = auth(acme["admin_token"])

    since = client.get("/api/visits", params={"startDate": "2024-01-01"}, headers=headers)
    until = client.get("/api/visits", params={"endDate": "2024-01-01"}, headers=headers)
    one_day = client.get("/api/visits", params={"startDate": "2024-01-01", "endDate": "2024-01-01"}, headers=headers)

    assert _ids(since) == [seeded["later"], seeded["new_year"]]
    assert _ids(until) == [seeded["new_year"], seeded["old"]]
    assert _ids(one_day) == [seeded["new_year"]]


def test_filters_compose_conjunctively(client, app, acme):
    seeded = _seed(client, app, acme)
    headers = auth(acme["admin_token"])

    resp = client.get("/api/visits", params={"startDate": "2024-01-01", "hostName": "Jo"}, headers=headers)

    assert _ids(resp) == [seeded["new_year"]]
    assert resp.json()[0]["hostName"] == "Joan Jones"


def test_name_filters_are_case_insensitive_substrings(client, app, acme):
    seeded = _seed(client, app, acme)
    headers = auth(acme["admin_token"])

    by_visitor = client.get("/api/visits", params={"visitorName": "SMITH"}, headers=headers)
    by_host = client.get("/api/visits", params={"hostName": "bo"}, headers=headers)
    by_host_id = client.get("/api/visits", params={"hostId": seeded["joan"]["id"]}, headers=headers)
    wildcard = client.get("/api/visits", params={"visitorName": "%"}, headers=headers)

    assert _ids(by_visitor) == [seeded["later"]]
    assert _ids(by_host) == [seeded["later"], seeded["old"]]
    assert _ids(by_host_id) == [seeded["new_year"]]
    assert _ids(wildcard) == []


def test_admin_only_sees_own_company(client, mailer, app, acme):
    _seed(client, app, acme)
    globex_admin = register_admin(client, mailer, "admin@globex.com", "Globex")

    assert _ids(client.get("/api/visits", headers=auth(globex_admin))) == []


def test_invalid_date_is_a_bad_request(client, acme):
    resp = client.get("/api/visits", params={"startDate": "yesterday"}, headers=auth(acme["admin_token"]))
    assert resp.status_code == 400


def test_visit_list_is_admin_only(client, acme):
    resp = client.get("/api/visits", headers=auth(acme["bob_token"]))
    assert resp.status_code == 403
    assert resp.json()["message"] == "Admin access required."


def test_host_sees_only_own_visits(client, app, acme):
    seeded = _seed(client, app, acme)
    joan_token = login(client, "joan@acme.com")

    bob_visits = client.get("/api/host-visits", headers=auth(acme["bob_token"]))
    joan_visits = client.get("/api/host-visits", headers=auth(joan_token))

    assert _ids(bob_visits) == [seeded["later"], seeded["old"]]
    assert _ids(joan_visits) == [seeded["new_year"]]
    assert bob_visits.json()[0]["hostCompany"] is None


def test_host_visits_is_host_only(client, acme):
    resp = client.get("/api/host-visits", headers=auth(acme["admin_token"]))
    assert resp.status_code == 403
