import pytest
from httpx import AsyncClient


def case_body(assignee_id, **overrides) -> dict:
    body = {
        "title": "Charred remains, vehicle fire",
        "description": "Request for dental identification of the driver",
        "case_type": "identification",
        "assigned_to_id": str(assignee_id),
        "patient": {"name": None, "gender": "not_informed"},
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_create_and_view_case_logs_history(async_client: AsyncClient, expert_user, standard_headers):
    created = await async_client.post("/v1/cases", json=case_body(expert_user.id), headers=standard_headers)
    assert created.status_code == 201
    case = created.json()
    assert case["status"] == "pending"

    fetched = await async_client.get(f"/v1/cases/{case['id']}", headers=standard_headers)
    assert fetched.status_code == 200
    assert fetched.json()["title"] == "Charred remains, vehicle fire"

    history = await async_client.get(f"/v1/cases/{case['id']}/history", headers=standard_headers)
    assert [e["action"] for e in history.json()] == ["creation", "view"]
    assert history.json()[1]["actor_name"] == "Sofia Standard"


@pytest.mark.asyncio
async def test_missing_case_is_404(async_client: AsyncClient, standard_headers):
    response = await async_client.get(
        "/v1/cases/7f6b2c0e-1f4c-4a53-9e0b-2a1d6c3f9b11", headers=standard_headers
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Case not found"


@pytest.mark.asyncio
async def test_unknown_case_type_is_rejected(async_client: AsyncClient, expert_user, standard_headers):
    response = await async_client.post(
        "/v1/cases", json=case_body(expert_user.id, case_type="homicide"), headers=standard_headers
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_assignee_changes_status(
    async_client: AsyncClient, standard_user, other_standard_user, make_headers
):
    owner_headers = make_headers(standard_user)
    assignee_headers = make_headers(other_standard_user)
    case = (await async_client.post(
        "/v1/cases", json=case_body(other_standard_user.id), headers=owner_headers
    )).json()

    response = await async_client.patch(
        f"/v1/cases/{case['id']}/status", json={"status": "in_progress"}, headers=assignee_headers
    )
    assert response.status_code == 200
    assert response.json()["status"] == "in_progress"

    history = await async_client.get(f"/v1/cases/{case['id']}/history", headers=owner_headers)
    assert history.json()[-1]["action"] == "status_changed"


@pytest.mark.asyncio
async def test_unrelated_user_cannot_edit_or_delete(
    async_client: AsyncClient, expert_user, standard_user, other_standard_user, make_headers
):
    case = (await async_client.post(
        "/v1/cases", json=case_body(expert_user.id), headers=make_headers(standard_user)
    )).json()
    stranger = make_headers(other_standard_user)

    edit = await async_client.patch(f"/v1/cases/{case['id']}", json={"title": "Mine now"}, headers=stranger)
    assert edit.status_code == 403

    delete = await async_client.delete(f"/v1/cases/{case['id']}", headers=stranger)
    assert delete.status_code == 403


@pytest.mark.asyncio
async def test_delete_removes_case_and_reports(
    async_client: AsyncClient, expert_user, standard_headers, admin_headers
):
    case = (await async_client.post(
        "/v1/cases", json=case_body(expert_user.id), headers=standard_headers
    )).json()
    report = (await async_client.post(
        "/v1/reports",
        json={
            "case_id": case["id"],
            "title": "Preliminary report",
            "template": "identification",
            "content": {
                "introduction": "i", "methodology": "m", "analysis": "a", "conclusion": "c",
            },
        },
        headers=standard_headers,
    )).json()

    response = await async_client.delete(f"/v1/cases/{case['id']}", headers=admin_headers)
    assert response.status_code == 204

    assert (await async_client.get(f"/v1/cases/{case['id']}", headers=admin_headers)).status_code == 404
    assert (await async_client.get(f"/v1/reports/{report['id']}", headers=admin_headers)).status_code == 404


@pytest.mark.asyncio
async def test_list_filters_sorts_and_searches(async_client: AsyncClient, expert_user, standard_headers):
    await async_client.post("/v1/cases", json=case_body(expert_user.id, title="Bite mark analysis",
                                                        case_type="trauma"), headers=standard_headers)
    await async_client.post("/v1/cases", json=case_body(expert_user.id, title="Age estimation",
                                                        case_type="age"), headers=standard_headers)

    by_type = await async_client.get("/v1/cases", params={"case_type": "age"}, headers=standard_headers)
    assert [c["title"] for c in by_type.json()] == ["Age estimation"]

    by_title = await async_client.get("/v1/cases", params={"sort": "title"}, headers=standard_headers)
    assert [c["title"] for c in by_title.json()] == ["Age estimation", "Bite mark analysis"]

    bad_sort = await async_client.get("/v1/cases", params={"sort": "-hashed_password"}, headers=standard_headers)
    assert bad_sort.status_code == 422

    search = await async_client.get("/v1/cases/search", params={"term": "BITE"}, headers=standard_headers)
    assert [c["title"] for c in search.json()] == ["Bite mark analysis"]
