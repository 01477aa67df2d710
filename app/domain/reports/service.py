"""Report service - Saved report templates and the standard per-event reports"""

import logging
from datetime import datetime

from fastapi import HTTPException
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import (
    GroupRegistration,
    IndividualRegistration,
    LiabilityForm,
    Payment,
    PaymentBalance,
    ReportTemplate,
    User,
)
from ...permissions import has_permission
from ...shared.event_access import get_event_for_user
from ...shared.serialization import to_snake_updates
from .executors import UnsupportedReportError, execute_report, group_balance_rows
from .schemas import ExecuteReportRequest, ReportTemplateCreate, ReportTemplateUpdate

logger = logging.getLogger(__name__)

STANDARD_REPORTS = ("registrations", "financial", "balances", "tshirts", "medical", "roster", "forms")
FINANCIAL_REPORTS = ("financial", "balances")


def template_to_dict(template: ReportTemplate) -> dict:
    return {
        "id": template.id,
        "name": template.name,
        "description": template.description,
        "reportType": template.report_type,
        "configuration": template.configuration or {},
        "isPublic": template.is_public,
        "createdById": template.created_by_id,
        "createdAt": template.created_at,
    }


def _money(value: float) -> float:
    return round(value or 0, 2)


class ReportService:
    """Service layer for reports"""

    def __init__(self, db: Session):
        self.db = db

    # ========================================================================
    # TEMPLATES
    # ========================================================================

    def list_templates(self, user: User) -> list:
        templates = (
            self.db.query(ReportTemplate)
            .filter(
                ReportTemplate.organization_id == user.organization_id,
                or_(ReportTemplate.is_public.is_(True), ReportTemplate.created_by_id == user.id),
            )
            .order_by(ReportTemplate.created_at.desc(), ReportTemplate.id.desc())
            .all()
        )
        return [template_to_dict(t) for t in templates]

    def create_template(self, data: ReportTemplateCreate, user: User) -> dict:
        template = ReportTemplate(
            organization_id=user.organization_id,
            created_by_id=user.id,
            name=data.name,
            description=data.description,
            report_type=data.reportType,
            configuration=data.configuration,
            is_public=data.isPublic,
        )
        self.db.add(template)
        self.db.commit()
        self.db.refresh(template)
        logger.info(f"✅ Report template '{template.name}' ({template.report_type}) created by {user.email}")
        return template_to_dict(template)

    def _get_template(self, template_id: int, user: User) -> ReportTemplate:
        template = (
            self.db.query(ReportTemplate)
            .filter(ReportTemplate.id == template_id, ReportTemplate.organization_id == user.organization_id)
            .first()
        )
        if not template:
            raise HTTPException(status_code=404, detail="Template not found")
        if not template.is_public and template.created_by_id != user.id:
            raise HTTPException(status_code=403, detail="You do not have access to this template")
        return template

    def get_template(self, template_id: int, user: User) -> dict:
        return template_to_dict(self._get_template(template_id, user))

    def _get_owned_template(self, template_id: int, user: User) -> ReportTemplate:
        template = self._get_template(template_id, user)
        if template.created_by_id != user.id and user.role not in ("org_admin", "master_admin"):
            raise HTTPException(status_code=403, detail="Only the creator can change this template")
        return template

    def update_template(self, template_id: int, data: ReportTemplateUpdate, user: User) -> dict:
        template = self._get_owned_template(template_id, user)
        for key, value in to_snake_updates(data.model_dump(exclude_unset=True)).items():
            setattr(template, key, value)
        self.db.commit()
        self.db.refresh(template)
        return template_to_dict(template)

    def delete_template(self, template_id: int, user: User) -> dict:
        template = self._get_owned_template(template_id, user)
        self.db.delete(template)
        self.db.commit()
        return {"message": "Template deleted"}

    def execute_template(self, template_id: int, data: ExecuteReportRequest, user: User) -> dict:
        template = self._get_template(template_id, user)
        event = get_event_for_user(self.db, data.eventId, user)
        try:
            report = execute_report(self.db, template.report_type, event.id, template.configuration)
        except UnsupportedReportError as e:
            raise HTTPException(status_code=400, detail=str(e))

        logger.info(f"📊 Executed report template {template.id} ({template.report_type}) for event {event.id}")
        return {
            "reportType": template.report_type,
            "template": {
                "id": template.id,
                "name": template.name,
                "description": template.description,
                "reportType": template.report_type,
            },
            "data": report,
            "generatedAt": datetime.utcnow().isoformat(),
        }

    # ========================================================================
    # STANDARD REPORTS
    # ========================================================================

    def standard_report(self, event_id: int, report_type: str, user: User) -> dict:
        """{summary, rows} where rows are flat dicts suitable for CSV"""
        if report_type not in STANDARD_REPORTS:
            raise HTTPException(status_code=400, detail="Unsupported report type")
        if report_type in FINANCIAL_REPORTS and not has_permission(
            user.role, "reports.view_financial", user.permissions
        ):
            raise HTTPException(status_code=403, detail="Permission denied: reports.view_financial")

        event = get_event_for_user(self.db, event_id, user)
        builder = getattr(self, f"_{report_type}_report")
        summary, rows = builder(event.id)
        return {"reportType": report_type, "eventId": event.id, "eventName": event.name, "summary": summary, "rows": rows}

    def _groups(self, event_id: int) -> list:
        return self.db.query(GroupRegistration).filter(GroupRegistration.event_id == event_id).all()

    def _individuals(self, event_id: int) -> list:
        return self.db.query(IndividualRegistration).filter(IndividualRegistration.event_id == event_id).all()

    def _registrations_report(self, event_id: int) -> tuple:
        groups = self._groups(event_id)
        individuals = self._individuals(event_id)
        by_status = {}
        by_housing = {}
        for reg in [*groups, *individuals]:
            by_status[reg.registration_status] = by_status.get(reg.registration_status, 0) + 1
            by_housing[reg.housing_type] = by_housing.get(reg.housing_type, 0) + 1

        rows = [
            {
                "type": "group",
                "name": g.group_name,
                "parish": g.parish_name or "",
                "contact": g.group_leader_name,
                "email": g.group_leader_email,
                "housingType": g.housing_type,
                "participants": g.total_participants,
                "status": g.registration_status,
            }
            for g in groups
        ] + [
            {
                "type": "individual",
                "name": f"{i.first_name} {i.last_name}",
                "parish": i.parish_name or "",
                "contact": f"{i.first_name} {i.last_name}",
                "email": i.email,
                "housingType": i.housing_type,
                "participants": 1,
                "status": i.registration_status,
            }
            for i in individuals
        ]
        active_groups = [g for g in groups if g.registration_status != "cancelled"]
        active_individuals = [i for i in individuals if i.registration_status != "cancelled"]
        summary = {
            "groupRegistrations": len(groups),
            "individualRegistrations": len(individuals),
            "totalParticipants": sum(g.total_participants for g in active_groups) + len(active_individuals),
            "byStatus": by_status,
            "byHousingType": by_housing,
        }
        return summary, rows

    def _financial_report(self, event_id: int) -> tuple:
        payments = (
            self.db.query(Payment).filter(Payment.event_id == event_id).order_by(Payment.created_at.desc()).all()
        )
        balances = self.db.query(PaymentBalance).filter(PaymentBalance.event_id == event_id).all()
        succeeded = [p for p in payments if p.payment_status == "succeeded"]
        by_method = {}
        for p in succeeded:
            by_method[p.payment_method] = _money(by_method.get(p.payment_method, 0) + p.amount)

        summary = {
            "totalDue": _money(sum(b.total_amount_due for b in balances)),
            "totalCollected": _money(sum(p.amount for p in succeeded)),
            "totalOutstanding": _money(sum(b.amount_remaining for b in balances)),
            "pendingPayments": sum(1 for p in payments if p.payment_status == "pending"),
            "byMethod": by_method,
        }
        rows = [
            {
                "paymentId": p.id,
                "registrationType": p.registration_type,
                "registrationId": p.registration_id,
                "amount": p.amount,
                "paymentType": p.payment_type,
                "paymentMethod": p.payment_method,
                "status": p.payment_status,
                "checkNumber": p.check_number or "",
                "processedAt": p.processed_at.isoformat() if p.processed_at else "",
            }
            for p in payments
        ]
        return summary, rows

    def _balances_report(self, event_id: int) -> tuple:
        rows = group_balance_rows(self.db, event_id)
        for row in rows:
            row["lastPaymentDate"] = row["lastPaymentDate"].isoformat() if row["lastPaymentDate"] else ""
        summary = {
            "groups": len(rows),
            "paidInFull": sum(1 for r in rows if r["paymentStatus"] == "paid_full"),
            "withBalance": sum(1 for r in rows if r["amountRemaining"] > 0),
            "totalRemaining": _money(sum(r["amountRemaining"] for r in rows)),
        }
        return summary, rows

    def _tshirts_report(self, event_id: int) -> tuple:
        sizes = {}
        for group in self._groups(event_id):
            if group.registration_status == "cancelled":
                continue
            for p in group.participants:
                if p.t_shirt_size:
                    sizes[p.t_shirt_size] = sizes.get(p.t_shirt_size, 0) + 1
        for i in self._individuals(event_id):
            if i.registration_status != "cancelled" and i.t_shirt_size:
                sizes[i.t_shirt_size] = sizes.get(i.t_shirt_size, 0) + 1
        rows = [{"size": size, "count": count} for size, count in sorted(sizes.items())]
        return {"totalShirts": sum(sizes.values()), "sizeCounts": sizes}, rows

    def _completed_forms(self, event_id: int) -> list:
        return (
            self.db.query(LiabilityForm)
            .filter(LiabilityForm.event_id == event_id, LiabilityForm.completed.is_(True))
            .order_by(LiabilityForm.participant_last_name.asc())
            .all()
        )

    def _medical_report(self, event_id: int) -> tuple:
        groups = {g.id: g.group_name for g in self._groups(event_id)}
        rows = []
        for form in self._completed_forms(event_id):
            details = (
                form.allergies,
                form.medications,
                form.medical_conditions,
                form.dietary_restrictions,
                form.ada_accommodations,
            )
            if not any(d and d.strip() for d in details):
                continue
            rows.append(
                {
                    "firstName": form.participant_first_name,
                    "lastName": form.participant_last_name,
                    "group": groups.get(form.group_registration_id, ""),
                    "allergies": form.allergies or "",
                    "medications": form.medications or "",
                    "medicalConditions": form.medical_conditions or "",
                    "dietaryRestrictions": form.dietary_restrictions or "",
                    "adaAccommodations": form.ada_accommodations or "",
                    "emergencyContact": form.emergency_contact_1_name or "",
                    "emergencyPhone": form.emergency_contact_1_phone or "",
                }
            )
        summary = {
            "participantsWithMedicalInfo": len(rows),
            "allergies": sum(1 for r in rows if r["allergies"]),
            "medications": sum(1 for r in rows if r["medications"]),
            "conditions": sum(1 for r in rows if r["medicalConditions"]),
        }
        return summary, rows

    def _roster_report(self, event_id: int) -> tuple:
        rows = []
        for group in self._groups(event_id):
            if group.registration_status == "cancelled":
                continue
            for p in group.participants:
                rows.append(
                    {
                        "firstName": p.first_name,
                        "lastName": p.last_name,
                        "participantType": p.participant_type,
                        "age": p.age if p.age is not None else "",
                        "gender": p.gender or "",
                        "group": group.group_name,
                        "parish": p.parish_name or group.parish_name or "",
                        "tShirtSize": p.t_shirt_size or "",
                        "formCompleted": p.liability_form_completed,
                        "checkedIn": p.checked_in,
                    }
                )
        rows.sort(key=lambda r: (r["lastName"].lower(), r["firstName"].lower()))
        by_type = {}
        for row in rows:
            by_type[row["participantType"]] = by_type.get(row["participantType"], 0) + 1
        return {"totalParticipants": len(rows), "byType": by_type}, rows

    def _forms_report(self, event_id: int) -> tuple:
        forms = self.db.query(LiabilityForm).filter(LiabilityForm.event_id == event_id).all()
        by_type = {}
        for form in forms:
            counts = by_type.setdefault(form.form_type, {"completed": 0, "pending": 0})
            counts["completed" if form.completed else "pending"] += 1
        rows = [
            {
                "firstName": f.participant_first_name,
                "lastName": f.participant_last_name,
                "formType": f.form_type,
                "completed": f.completed,
                "completedAt": f.completed_at.isoformat() if f.completed_at else "",
                "completedBy": f.completed_by_email or "",
            }
            for f in forms
        ]
        summary = {
            "total": len(forms),
            "completed": sum(1 for f in forms if f.completed),
            "pending": sum(1 for f in forms if not f.completed),
            "byFormType": by_type,
        }
        return summary, rows
