import pytest
import pytest_asyncio
from httpx import AsyncClient

CONTENT = {
    "introduction": "Examination requested by the medical examiner",
    "methodology": "Visual and radiographic comparison",
    "analysis": "Amalgam restorations on 36 and 46 match the ante-mortem chart",
    "conclusion": "Positive identification",
    "references": ["Interpol DVI Guide"],
}


@pytest_asyncio.fixture
async def case_id(async_client: AsyncClient, expert_user, standard_headers) -> str:
    response = await async_client.post(
        "/v1/cases",
        json={
            "title": "Missing hiker",
            "description": "Remains found on the trail",
            "case_type": "identification",
            "assigned_to_id": str(expert_user.id),
        },
        headers=standard_headers,
    )
    return response.json()["id"]


async def create_report(client: AsyncClient, case_id: str, headers: dict) -> dict:
    response = await client.post(
        "/v1/reports",
        json={"case_id": case_id, "title": "Dental identification", "template": "identification", "content": CONTENT},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_report_on_missing_case_is_404(async_client: AsyncClient, standard_headers):
    response = await async_client.post(
        "/v1/reports",
        json={
            "case_id": "0b7d5f44-6c1e-4b36-8f1d-3f0e2a9c7d21",
            "title": "Orphan",
            "template": "general",
            "content": CONTENT,
        },
        headers=standard_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_incomplete_content_is_rejected(async_client: AsyncClient, case_id, standard_headers):
    response = await async_client.post(
        "/v1/reports",
        json={"case_id": case_id, "title": "Draft", "template": "general",
              "content": {**CONTENT, "conclusion": ""}},
        headers=standard_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_edit_review_finalize_and_export(
    async_client: AsyncClient, case_id, standard_headers, expert_headers
):
    report = await create_report(async_client, case_id, standard_headers)
    assert report["version"] == 1
    assert report["status"] == "draft"

    edited = await async_client.patch(
        f"/v1/reports/{report['id']}",
        json={"content": {**CONTENT, "conclusion": "Probable identification"}, "version_comments": "softened"},
        headers=standard_headers,
    )
    assert edited.status_code == 200
    assert edited.json()["version"] == 2

    versions = await async_client.get(f"/v1/reports/{report['id']}/versions", headers=standard_headers)
    assert [(v["version"], v["content"]["conclusion"], v["comments"]) for v in versions.json()] == [
        (1, "Positive identification", "softened")
    ]

    not_ready = await async_client.get(f"/v1/reports/{report['id']}/export/docx", headers=standard_headers)
    assert not_ready.status_code == 409

    review = await async_client.post(f"/v1/reports/{report['id']}/review", headers=standard_headers)
    assert review.json()["status"] == "review"

    forbidden = await async_client.post(f"/v1/reports/{report['id']}/finalize", headers=standard_headers)
    assert forbidden.status_code == 403

    final = await async_client.post(f"/v1/reports/{report['id']}/finalize", headers=expert_headers)
    assert final.status_code == 200
    assert final.json()["status"] == "finalized"

    again = await async_client.post(f"/v1/reports/{report['id']}/finalize", headers=expert_headers)
    assert again.status_code == 409

    late_edit = await async_client.patch(
        f"/v1/reports/{report['id']}", json={"title": "Too late"}, headers=expert_headers
    )
    assert late_edit.status_code == 409

    export = await async_client.get(f"/v1/reports/{report['id']}/export/docx", headers=standard_headers)
    assert export.status_code == 200
    assert export.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
    )
    assert 'filename="report_' in export.headers["content-disposition"]
    # DOCX files are zip archives
    assert export.content[:2] == b"PK"

    history = await async_client.get(f"/v1/reports/{report['id']}/history", headers=standard_headers)
    assert [e["action"] for e in history.json()] == ["creation", "edit", "review", "finalization"]


@pytest.mark.asyncio
async def test_stranger_cannot_edit_report(
    async_client: AsyncClient, case_id, standard_headers, other_standard_user, make_headers
):
    report = await create_report(async_client, case_id, standard_headers)

    response = await async_client.patch(
        f"/v1/reports/{report['id']}", json={"title": "Hijacked"}, headers=make_headers(other_standard_user)
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_report_creation_is_noted_on_case(async_client: AsyncClient, case_id, standard_headers):
    await create_report(async_client, case_id, standard_headers)

    history = await async_client.get(f"/v1/cases/{case_id}/history", headers=standard_headers)
    actions = [e["action"] for e in history.json()]
    assert actions == ["creation", "attachment_added"]

    listing = await async_client.get("/v1/reports", params={"case_id": case_id}, headers=standard_headers)
    assert len(listing.json()) == 1
