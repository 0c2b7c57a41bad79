import io

from docx import Document as DocxDocument
from docx.shared import Pt
from docx.enum.text import WD_ALIGN_PARAGRAPH

from odontolegal.cases.models import Case
from odontolegal.reports.models import Report

SECTIONS = [
    ("introduction", "1. Introduction"),
    ("methodology", "2. Methodology"),
    ("analysis", "3. Analysis"),
    ("conclusion", "4. Conclusion"),
]


class ReportRenderer:
    """Renders a report as a DOCX forensic odontology report."""

    def render(self, report: Report, case: Case, author_name: str, reviewer_name: str = None) -> bytes:
        doc = DocxDocument()

        self._add_header(doc, report, case)
        self._add_content(doc, report.content or {})
        self._add_signatures(doc, author_name, reviewer_name)

        buffer = io.BytesIO()
        doc.save(buffer)
        buffer.seek(0)
        return buffer.read()

    def _add_header(self, doc: DocxDocument, report: Report, case: Case):
        title = doc.add_paragraph()
        title.alignment = WD_ALIGN_PARAGRAPH.CENTER
        run = title.add_run("FORENSIC ODONTOLOGY REPORT")
        run.bold = True
        run.font.size = Pt(20)

        doc.add_paragraph()  # spacer

        for line in (
            f"Title: {report.title}",
            f"Case: {case.title}",
            f"Version: {report.version}",
            f"Date: {(report.review_date or report.updated_at).strftime('%Y-%m-%d')}",
        ):
            p = doc.add_paragraph()
            run = p.add_run(line)
            run.font.size = Pt(12)

    def _add_content(self, doc: DocxDocument, content: dict):
        for key, heading in SECTIONS:
            doc.add_heading(heading, level=1)
            doc.add_paragraph(content.get(key, ""))

        references = content.get("references") or []
        if references:
            doc.add_heading("5. References", level=1)
            for ref in references:
                doc.add_paragraph(ref, style="List Bullet")

    def _add_signatures(self, doc: DocxDocument, author_name: str, reviewer_name: str = None):
        doc.add_paragraph()
        p = doc.add_paragraph()
        p.alignment = WD_ALIGN_PARAGRAPH.RIGHT
        p.add_run(f"Responsible expert: {author_name}")
        if reviewer_name:
            p = doc.add_paragraph()
            p.alignment = WD_ALIGN_PARAGRAPH.RIGHT
            p.add_run(f"Reviewed by: {reviewer_name}")
