from io import BytesIO
from typing import Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from ..models.models import DailyLog


NO_EMPLOYEES_TEXT = "No employees recorded."


def _text(value: Optional[str]) -> str:
    # Paragraph parses a small XML dialect; user text must not be read as markup
    return escape(value or "").replace("\n", "<br/>")


def build_log_pdf(log: DailyLog, team_leader_name: Optional[str] = None) -> bytes:
    """
    Render a single daily log as a one-page report.

    Args:
        log: The log to render
        team_leader_name: Display name shown next to the team leader id, if known

    Returns:
        PDF bytes
    """
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=54,
        leftMargin=54,
        topMargin=54,
        bottomMargin=54,
        title=f"Daily Work Log {log.date.strftime('%d/%m/%Y')}",
    )

    story = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'LogTitle',
        parent=styles['Heading1'],
        fontSize=22,
        textColor=colors.HexColor('#1f3a5f'),
        spaceAfter=18,
        alignment=1,  # Center
        fontName='Helvetica-Bold',
    )
    section_style = ParagraphStyle(
        'LogSection',
        parent=styles['Heading2'],
        fontSize=13,
        textColor=colors.HexColor('#1f3a5f'),
        spaceBefore=12,
        spaceAfter=6,
    )
    body_style = ParagraphStyle(
        'LogBody',
        parent=styles['Normal'],
        fontSize=11,
        leading=15,
        textColor=colors.HexColor('#333333'),
    )

    story.append(Paragraph("Daily Work Log Report", title_style))

    leader = str(log.team_leader_id)
    if team_leader_name:
        leader = f"{team_leader_name} ({leader})"
    details = [
        ["Date:", log.date.strftime("%d/%m/%Y")],
        ["Project:", Paragraph(_text(log.project), body_style)],
        ["Team Leader ID:", Paragraph(_text(leader), body_style)],
        ["Work Hours:", f"{log.start_time.strftime('%H:%M')} - {log.end_time.strftime('%H:%M')}"],
        ["Status:", log.status.capitalize()],
    ]
    details_table = Table(details, colWidths=[1.6 * inch, 4.8 * inch])
    details_table.setStyle(TableStyle([
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 11),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
        ('LINEBELOW', (0, -1), (-1, -1), 0.5, colors.HexColor('#cccccc')),
    ]))
    story.append(details_table)
    story.append(Spacer(1, 0.2 * inch))

    story.append(Paragraph("Employees", section_style))
    if log.employees:
        for i, name in enumerate(log.employees, start=1):
            story.append(Paragraph(f"{i}. {_text(name)}", body_style))
    else:
        story.append(Paragraph(NO_EMPLOYEES_TEXT, body_style))

    story.append(Paragraph("Work Description", section_style))
    story.append(Paragraph(_text(log.work_description), body_style))

    doc.build(story)
    return buffer.getvalue()
