from app.domain.reports.executors import filter_fields
from app.models import ReportTemplate

from conftest import person


def test_filter_fields_keeps_dotted_keys():
    rows = [
        {
            "firstName": "Luke",
            "lastName": "Smith",
            "groupRegistration": {"groupName": "St. Anne", "parishName": "St. Anne Parish"},
        }
    ]

    result = filter_fields(rows, ["firstName", "groupRegistration.parishName", "missing.key"])

    assert result == [
        {"firstName": "Luke", "groupRegistration": {"parishName": "St. Anne Parish"}, "missing": {"key": None}}
    ]
    assert filter_fields(rows, None) is rows


def test_tshirt_report(client, admin, event, make_group):
    make_group(
        event,
        participants=[
            person("Luke", t_shirt_size="M"),
            person("Mark", t_shirt_size="M"),
            person("Mary", gender="female", t_shirt_size="S"),
            person("John"),
        ],
    )
    make_group(event, participants=[person("Paul", t_shirt_size="XL")], registration_status="cancelled")

    response = client.get(f"/events/{event.id}/reports/tshirts")

    assert response.status_code == 200
    body = response.json()
    assert body["eventName"] == event.name
    assert body["summary"] == {"totalShirts": 3, "sizeCounts": {"M": 2, "S": 1}}
    assert body["rows"] == [{"size": "M", "count": 2}, {"size": "S", "count": 1}]


def test_report_as_csv(client, admin, event, make_group):
    make_group(event, participants=[person("Luke", t_shirt_size="L")])

    response = client.get(f"/events/{event.id}/reports/tshirts", params={"format": "csv"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment" in response.headers["content-disposition"]
    lines = response.text.strip().splitlines()
    assert lines[0] == "size,count"
    assert lines[1] == "L,1"


def test_unsupported_report_type(client, admin, event):
    assert client.get(f"/events/{event.id}/reports/horoscopes").status_code == 400


def test_financial_report_needs_financial_permission(client, organization, make_user, login, event):
    login(make_user(organization, role="staff"))

    assert client.get(f"/events/{event.id}/reports/financial").status_code == 403
    assert client.get(f"/events/{event.id}/reports/tshirts").status_code == 200


def test_finance_manager_sees_balances(client, organization, make_user, login, event, make_group):
    login(make_user(organization, role="finance_manager"))
    make_group(event, participants=[person("Luke")])

    response = client.get(f"/events/{event.id}/reports/balances")

    assert response.status_code == 200
    assert len(response.json()["rows"]) == 1


def test_template_crud_and_visibility(client, db, admin, organization, make_user, login):
    created = client.post(
        "/reports/templates",
        json={
            "name": " Shirt order ",
            "reportType": "tshirts",
            "configuration": {"filters": {"onlyWithSizes": True}},
        },
    )
    assert created.status_code == 201
    template_id = created.json()["id"]
    assert created.json()["name"] == "Shirt order"
    assert created.json()["isPublic"] is False

    renamed = client.patch(f"/reports/templates/{template_id}", json={"name": "Shirt order 2026"})
    assert renamed.json()["name"] == "Shirt order 2026"

    # Private templates are hidden from colleagues
    login(make_user(organization, role="staff"))
    assert client.get("/reports/templates").json() == []
    assert client.get(f"/reports/templates/{template_id}").status_code == 403

    login(admin)
    assert client.delete(f"/reports/templates/{template_id}").status_code == 200
    assert db.query(ReportTemplate).count() == 0


def test_unknown_report_type_rejected_on_create(client, admin):
    response = client.post("/reports/templates", json={"name": "Bad", "reportType": "astrology"})
    assert response.status_code == 422


def test_execute_tshirt_template(client, admin, event, make_group):
    make_group(event, participants=[person("Luke", t_shirt_size="M"), person("Mark")])
    template = client.post(
        "/reports/templates",
        json={
            "name": "Shirts",
            "reportType": "tshirts",
            "configuration": {
                "filters": {"onlyWithSizes": True},
                "fields": {"participants": ["firstName", "groupRegistration.groupName"]},
            },
        },
    ).json()

    response = client.post(f"/reports/templates/{template['id']}/execute", json={"eventId": event.id})

    assert response.status_code == 200
    body = response.json()
    assert body["reportType"] == "tshirts"
    assert body["template"]["name"] == "Shirts"
    assert body["data"]["sizeCounts"] == {"M": 1}
    assert body["data"]["participants"] == [
        {"firstName": "Luke", "groupRegistration": {"groupName": "Group 1"}}
    ]


def test_custom_report_rejects_unknown_model(client, admin, event):
    template = client.post(
        "/reports/templates",
        json={"name": "Users", "reportType": "custom", "configuration": {"query": {"model": "user"}}},
    ).json()

    response = client.post(f"/reports/templates/{template['id']}/execute", json={"eventId": event.id})

    assert response.status_code == 400
    assert response.json()["detail"] == "Unsupported model: user"


def test_custom_report_filters_participants(client, admin, event, make_group):
    make_group(event, participants=[person("Luke"), person("Mary", gender="female")])
    template = client.post(
        "/reports/templates",
        json={
            "name": "Girls",
            "reportType": "custom",
            "configuration": {
                "query": {"model": "participant", "where": {"gender": "female"}},
                "fields": ["firstName", "groupRegistration.groupName"],
            },
        },
    ).json()

    response = client.post(f"/reports/templates/{template['id']}/execute", json={"eventId": event.id})

    assert response.json()["data"] == [{"firstName": "Mary", "groupRegistration": {"groupName": "Group 1"}}]
