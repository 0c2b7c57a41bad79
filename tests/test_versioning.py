import pytest

from odontolegal.cases.models import CaseType
from odontolegal.cases.schemas import CaseCreate
from odontolegal.cases.service import CaseService
from odontolegal.reports.models import Report, ReportStatus, ReportTemplate
from odontolegal.reports.schemas import ReportContent, ReportCreate, ReportUpdate
from odontolegal.reports.service import ReportService
from odontolegal.reports.versioning import VersionChain
from odontolegal.shared.exceptions import Forbidden, InvalidState


def content(conclusion: str) -> ReportContent:
    return ReportContent(
        introduction="Request from the civil police",
        methodology="Comparison of ante-mortem and post-mortem records",
        analysis="Restorations on 16 and 26 are consistent",
        conclusion=conclusion,
    )


@pytest.fixture
def report_actors(expert_user, standard_user, make_actor):
    return make_actor(expert_user), make_actor(standard_user)


async def create_report(db, author, assignee) -> Report:
    case = await CaseService(db).create_case(
        CaseCreate(
            title="Case for reporting",
            description="Identification request",
            case_type=CaseType.IDENTIFICATION,
            assigned_to_id=assignee.id,
        ),
        author,
    )
    report = await ReportService(db).create_report(
        ReportCreate(
            case_id=case.id,
            title="Identification report",
            template=ReportTemplate.IDENTIFICATION,
            content=content("Draft conclusion"),
        ),
        author,
    )
    return report


@pytest.mark.asyncio
async def test_each_edit_snapshots_previous_version(db_session, expert_user, report_actors):
    expert, _ = report_actors
    service = ReportService(db_session)
    report = await create_report(db_session, expert, expert_user)
    assert report.version == 1

    for n in range(1, 4):
        report = await service.update_report(
            report.id, ReportUpdate(content=content(f"Conclusion v{n + 1}"), version_comments=f"edit {n}"), expert
        )

    assert report.version == 4
    assert report.content.conclusion == "Conclusion v4"

    versions = await service.list_versions(report.id)
    assert [v.version for v in versions] == [1, 2, 3]
    assert versions[0].content["conclusion"] == "Draft conclusion"
    assert versions[2].content["conclusion"] == "Conclusion v3"
    assert versions[1].comments == "edit 2"
    assert all(v.modified_by_id == expert.id for v in versions)


@pytest.mark.asyncio
async def test_title_only_edit_still_bumps_version(db_session, expert_user, report_actors):
    expert, _ = report_actors
    service = ReportService(db_session)
    report = await create_report(db_session, expert, expert_user)

    report = await service.update_report(report.id, ReportUpdate(title="Renamed"), expert)

    assert report.version == 2
    assert report.title == "Renamed"
    versions = await service.list_versions(report.id)
    assert versions[0].content["conclusion"] == "Draft conclusion"


@pytest.mark.asyncio
async def test_finalized_report_cannot_be_edited_or_finalized_again(db_session, expert_user, report_actors):
    expert, _ = report_actors
    service = ReportService(db_session)
    report = await create_report(db_session, expert, expert_user)

    finalized = await service.finalize_report(report.id, expert)
    assert finalized.status == ReportStatus.FINALIZED
    assert finalized.reviewed_by_id == expert.id
    assert finalized.review_date is not None

    with pytest.raises(InvalidState):
        await service.update_report(report.id, ReportUpdate(title="Too late"), expert)
    with pytest.raises(InvalidState):
        await service.finalize_report(report.id, expert)
    with pytest.raises(InvalidState):
        await service.submit_for_review(report.id, expert)

    assert await service.list_versions(report.id) == []


@pytest.mark.asyncio
async def test_stale_snapshot_loses(db_session, expert_user, report_actors):
    expert, _ = report_actors
    service = ReportService(db_session)
    created = await create_report(db_session, expert, expert_user)

    report = await db_session.get(Report, created.id)
    chain = VersionChain(db_session)
    stale = chain.begin_edit(report)

    await service.update_report(created.id, ReportUpdate(content=content("Winner")), expert)

    with pytest.raises(InvalidState):
        await chain.commit_edit(report, content("Loser").model_dump(), expert, snapshot=stale)

    versions = await service.list_versions(created.id)
    assert len(versions) == 1
    current = await db_session.get(Report, created.id)
    await db_session.refresh(current)
    assert current.version == 2
    assert current.content["conclusion"] == "Winner"


@pytest.mark.asyncio
async def test_standard_user_cannot_finalize(db_session, expert_user, standard_user, report_actors):
    _, standard = report_actors
    service = ReportService(db_session)
    report = await create_report(db_session, standard, expert_user)

    await service.submit_for_review(report.id, standard)
    with pytest.raises(Forbidden):
        await service.finalize_report(report.id, standard)
    with pytest.raises(InvalidState):
        await service.submit_for_review(report.id, standard)


@pytest.mark.asyncio
async def test_report_trail_records_lifecycle(db_session, expert_user, report_actors):
    expert, _ = report_actors
    service = ReportService(db_session)
    report = await create_report(db_session, expert, expert_user)

    await service.update_report(report.id, ReportUpdate(title="Edited"), expert)
    await service.submit_for_review(report.id, expert)
    await service.finalize_report(report.id, expert)

    entries = await service.get_history(report.id)
    assert [e.action for e in entries] == ["creation", "edit", "review", "finalization"]
