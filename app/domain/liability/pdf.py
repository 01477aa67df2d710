"""
Liability Form PDF Generator
Renders a completed Poros form as a printable record for the event office
"""

import html
import io
import logging
from datetime import datetime

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ...models import Event, LiabilityForm

logger = logging.getLogger(__name__)

FORM_TITLES = {
    "youth_u18": "Youth Liability Form (Under 18)",
    "youth_o18_chaperone": "Adult Liability Form (Youth 18+ / Chaperone)",
    "clergy": "Clergy Liability Form",
}


class LiabilityFormPDFGenerator:
    """Generate liability form PDFs"""

    def __init__(self, form: LiabilityForm, event: Event):
        self.form = form
        self.event = event

        self.margin = 0.75 * inch
        self.navy = colors.HexColor("#1e3a5f")
        self.gold = colors.HexColor("#c9a227")
        self.dark_gray = colors.HexColor("#1e293b")
        self.light_gray = colors.HexColor("#f1f5f9")

    def _section_table(self, rows: list) -> Table:
        table = Table([[label, value or "-"] for label, value in rows], colWidths=[2.2 * inch, 4.8 * inch])
        table.setStyle(
            TableStyle(
                [
                    ("FONT", (0, 0), (0, -1), "Helvetica-Bold", 9),
                    ("FONT", (1, 0), (1, -1), "Helvetica", 9),
                    ("TEXTCOLOR", (0, 0), (-1, -1), self.dark_gray),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("ROWBACKGROUNDS", (0, 0), (-1, -1), [colors.white, self.light_gray]),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
                    ("TOPPADDING", (0, 0), (-1, -1), 5),
                ]
            )
        )
        return table

    def generate(self) -> bytes:
        """Generate PDF and return bytes"""
        form = self.form
        logger.info(f"📄 Generating liability PDF for form {form.id}")

        buffer = io.BytesIO()
        full_name = f"{form.participant_first_name} {form.participant_last_name}"
        doc = SimpleDocTemplate(
            buffer,
            pagesize=letter,
            rightMargin=self.margin,
            leftMargin=self.margin,
            topMargin=self.margin,
            bottomMargin=self.margin,
            title=f"Liability Form - {full_name}",
        )

        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(
            "FormTitle", parent=styles["Heading1"], fontSize=20, textColor=self.navy, alignment=1, spaceAfter=6
        )
        subtitle_style = ParagraphStyle(
            "FormSubtitle", parent=styles["Normal"], fontSize=11, textColor=self.gold, alignment=1, spaceAfter=18
        )
        heading_style = ParagraphStyle(
            "SectionHeading", parent=styles["Heading2"], fontSize=13, textColor=self.navy, spaceBefore=14, spaceAfter=6
        )
        footer_style = ParagraphStyle("Footer", parent=styles["Normal"], fontSize=8, textColor=colors.grey)

        story = [
            Paragraph(FORM_TITLES.get(form.form_type, "Liability Form"), title_style),
            Paragraph(html.escape(self.event.name), subtitle_style),
        ]

        story.append(Paragraph("Participant", heading_style))
        participant_rows = [
            ("Name", full_name),
            ("Preferred Name", form.participant_preferred_name),
            ("Age", str(form.participant_age) if form.participant_age is not None else None),
            ("Gender", (form.participant_gender or "").title()),
            ("Email", form.participant_email),
            ("Phone", form.participant_phone),
            ("T-Shirt Size", form.t_shirt_size),
        ]
        if form.form_type == "clergy":
            participant_rows += [("Title", form.clergy_title), ("Faith Facility", form.faith_facility)]
        if form.parent_email:
            participant_rows.append(("Parent / Guardian Email", form.parent_email))
        story.append(self._section_table(participant_rows))

        story.append(Paragraph("Medical Information", heading_style))
        story.append(
            self._section_table(
                [
                    ("Allergies", form.allergies),
                    ("Medications", form.medications),
                    ("Medical Conditions", form.medical_conditions),
                    ("Dietary Restrictions", form.dietary_restrictions),
                    ("ADA Accommodations", form.ada_accommodations),
                ]
            )
        )

        story.append(Paragraph("Emergency Contacts", heading_style))
        story.append(
            self._section_table(
                [
                    ("Primary", self._contact(1)),
                    ("Secondary", self._contact(2)),
                ]
            )
        )

        story.append(Paragraph("Insurance", heading_style))
        story.append(
            self._section_table(
                [
                    ("Provider", form.insurance_provider),
                    ("Policy Number", form.insurance_policy_number),
                    ("Group Number", form.insurance_group_number),
                ]
            )
        )

        signature = form.signature_data or {}
        story.append(Paragraph("Signature", heading_style))
        story.append(
            self._section_table(
                [
                    ("Signed By", signature.get("full_legal_name")),
                    ("Initials", signature.get("initials")),
                    ("Date Signed", signature.get("date_signed")),
                    ("Sections Initialed", ", ".join(signature.get("sections_initialed") or [])),
                    ("Completed", form.completed_at.strftime("%B %d, %Y %H:%M UTC") if form.completed_at else None),
                    ("Completed By", form.completed_by_email),
                ]
            )
        )

        story.append(Spacer(1, 0.4 * inch))
        story.append(
            Paragraph(
                f"Form {form.public_id} · generated {datetime.utcnow().strftime('%B %d, %Y')}",
                footer_style,
            )
        )

        doc.build(story)
        pdf_bytes = buffer.getvalue()
        buffer.close()
        logger.info(f"✅ Liability PDF generated for form {form.id} ({len(pdf_bytes)} bytes)")
        return pdf_bytes

    def _contact(self, number: int) -> str:
        name = getattr(self.form, f"emergency_contact_{number}_name")
        if not name:
            return ""
        phone = getattr(self.form, f"emergency_contact_{number}_phone") or ""
        relation = getattr(self.form, f"emergency_contact_{number}_relation") or ""
        return " · ".join(part for part in (name, relation, phone) if part)
