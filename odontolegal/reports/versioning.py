"""Version chain for report content.

Each accepted edit stores the pre-edit content as a ``ReportVersion`` tagged
with the version number the report had at that moment, then bumps the live
report's ``version`` by exactly one. Snapshots are an audit record only;
nothing here restores an old version.
"""
import copy
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from odontolegal.auth.schemas import Actor
from odontolegal.reports.models import Report, ReportStatus, ReportVersion
from odontolegal.shared.exceptions import InvalidState
from odontolegal.shared.models import utcnow


def ensure_editable(report: Report) -> None:
    if report.status == ReportStatus.FINALIZED:
        raise InvalidState("This report is finalized and can no longer be edited")


@dataclass(frozen=True)
class EditSnapshot:
    report_id: UUID
    version: int
    content: Dict[str, Any]


class VersionChain:
    def __init__(self, db: AsyncSession):
        self.db = db

    def begin_edit(self, report: Report) -> EditSnapshot:
        ensure_editable(report)
        return EditSnapshot(
            report_id=report.id,
            version=report.version,
            content=copy.deepcopy(report.content),
        )

    async def commit_edit(
        self,
        report: Report,
        new_content: Dict[str, Any],
        editor: Actor,
        comments: Optional[str] = None,
        snapshot: Optional[EditSnapshot] = None,
        **changes: Any,
    ) -> Report:
        """Store the pre-edit snapshot and move the report to ``version + 1``.

        The update only matches while the report is still at the snapshot's
        version and not finalized, so of two racing edits exactly one wins.
        """
        snapshot = snapshot or self.begin_edit(report)

        result = await self.db.execute(
            update(Report)
            .where(
                Report.id == snapshot.report_id,
                Report.version == snapshot.version,
                Report.status != ReportStatus.FINALIZED,
            )
            .values(content=new_content, version=snapshot.version + 1, **changes)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self.db.rollback()
            raise InvalidState(
                "Report changed since it was loaded (concurrent edit or finalization); reload and retry"
            )

        self.db.add(ReportVersion(
            report_id=snapshot.report_id,
            version=snapshot.version,
            content=snapshot.content,
            modified_by_id=editor.id,
            modified_at=utcnow(),
            comments=comments,
        ))
        await self.db.commit()
        await self.db.refresh(report)
        return report

    async def versions(self, report_id: UUID) -> List[ReportVersion]:
        result = await self.db.execute(
            select(ReportVersion)
            .where(ReportVersion.report_id == report_id)
            .order_by(ReportVersion.version)
        )
        return list(result.scalars().all())
