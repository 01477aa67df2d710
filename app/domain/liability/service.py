"""Liability service - Poros form flows, parent consent and safe-environment certificates"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import FRONTEND_URL, PARENT_LINK_EXPIRY_DAYS
from ...models import (
    Event,
    GroupRegistration,
    LiabilityForm,
    Organization,
    Participant,
    SafeEnvironmentCertificate,
    User,
)
from ...qr_codes import participant_qr_data
from ...shared.event_access import get_event_for_user
from ...utils.sanitization import sanitize_filename
from ..registrations.repository import RegistrationRepository
from .pdf import LiabilityFormPDFGenerator
from .schemas import (
    AdultFormSubmit,
    CertificateReview,
    ClergyFormSubmit,
    ParentFormComplete,
    SignatureInfo,
    YouthU18Initiate,
)

logger = logging.getLogger(__name__)

SECTIONS_INITIALED = ["medical_consent", "activity_waiver", "photo_release", "transportation"]
YOUTH_U18_MIN_AGE = 12
YOUTH_U18_MAX_AGE = 17


def build_signature_data(signature: SignatureInfo, ip_address: str, user_agent: str) -> dict:
    return {
        "full_legal_name": signature.signatureFullName,
        "initials": signature.signatureInitials,
        "date_signed": signature.signatureDate or datetime.utcnow().date().isoformat(),
        "sections_initialed": SECTIONS_INITIALED,
        "ip_address": ip_address,
        "user_agent": user_agent,
    }


def form_to_dict(form: LiabilityForm, include_medical: bool = False) -> dict:
    data = {
        "id": form.id,
        "publicId": form.public_id,
        "eventId": form.event_id,
        "groupRegistrationId": form.group_registration_id,
        "participantId": form.participant_id,
        "formType": form.form_type,
        "participantType": form.participant_type,
        "firstName": form.participant_first_name,
        "lastName": form.participant_last_name,
        "preferredName": form.participant_preferred_name,
        "age": form.participant_age,
        "gender": form.participant_gender,
        "email": form.participant_email,
        "tShirtSize": form.t_shirt_size,
        "parentEmail": form.parent_email,
        "completed": form.completed,
        "completedAt": form.completed_at,
        "createdAt": form.created_at,
    }
    if include_medical:
        data.update(
            {
                "allergies": form.allergies,
                "medications": form.medications,
                "medicalConditions": form.medical_conditions,
                "dietaryRestrictions": form.dietary_restrictions,
                "adaAccommodations": form.ada_accommodations,
            }
        )
    return data


def certificate_to_dict(certificate: SafeEnvironmentCertificate) -> dict:
    return {
        "id": certificate.id,
        "liabilityFormId": certificate.liability_form_id,
        "participantId": certificate.participant_id,
        "programName": certificate.program_name,
        "completionDate": certificate.completion_date,
        "expirationDate": certificate.expiration_date,
        "status": certificate.status,
        "verifiedById": certificate.verified_by_id,
        "verifiedAt": certificate.verified_at,
        "notes": certificate.notes,
    }


class LiabilityService:
    """Service layer for liability form business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.registrations = RegistrationRepository()

    # ========================================================================
    # HELPERS
    # ========================================================================

    def _group_by_code(self, access_code: str) -> GroupRegistration:
        registration = self.registrations.get_group_by_access_code(self.db, access_code)
        if not registration or registration.registration_status == "cancelled":
            raise HTTPException(status_code=404, detail="Invalid access code")
        self._require_forms_enabled(registration.event)
        return registration

    @staticmethod
    def _require_forms_enabled(event: Event) -> None:
        settings = event.settings
        if settings is not None and not settings.poros_enabled:
            raise HTTPException(status_code=400, detail="Liability forms are not enabled for this event")

    def _organization_name(self, organization_id: int) -> Optional[str]:
        organization = self.db.get(Organization, organization_id)
        return organization.name if organization else None

    def _add_participant(self, registration: GroupRegistration, form: LiabilityForm) -> Participant:
        """Create the roster entry for a completed form; caller commits"""
        participant = Participant(
            group_registration_id=registration.id,
            first_name=form.participant_first_name,
            last_name=form.participant_last_name,
            preferred_name=form.participant_preferred_name,
            email=form.participant_email,
            age=form.participant_age,
            gender=form.participant_gender,
            participant_type=form.participant_type,
            t_shirt_size=form.t_shirt_size,
            parish_name=registration.parish_name,
            liability_form_completed=True,
        )
        self.db.add(participant)
        self.db.flush()
        participant.qr_code = participant_qr_data(participant.public_id)
        form.participant_id = participant.id
        return participant

    def _completion_emails(
        self, registration: GroupRegistration, form: LiabilityForm, recipient_email: Optional[str], recipient_name: str
    ) -> list[dict]:
        """send_liability_form_completed args for the signer and the group leader"""
        event = registration.event
        participant_name = f"{form.participant_first_name} {form.participant_last_name}"
        base = dict(
            organization_id=event.organization_id,
            event_id=event.id,
            group_registration_id=registration.id,
            participant_name=participant_name,
            event_name=event.name,
            organization_name=self._organization_name(event.organization_id),
        )
        emails = []
        if recipient_email:
            emails.append(dict(base, to=recipient_email, recipient_name=recipient_name))
        if registration.group_leader_email and registration.group_leader_email != recipient_email:
            emails.append(
                dict(
                    base,
                    to=registration.group_leader_email,
                    recipient_name=registration.group_leader_name,
                    for_group_leader=True,
                )
            )
        return emails

    # ========================================================================
    # YOUTH UNDER 18
    # ========================================================================

    def initiate_youth_u18(self, data: YouthU18Initiate) -> tuple:
        """
        Start an under-18 form and hand it to the parent.
        Returns (response, email_args) for send_parent_consent_request.
        """
        if not YOUTH_U18_MIN_AGE <= data.age <= YOUTH_U18_MAX_AGE:
            raise HTTPException(status_code=400, detail="Age must be between 12 and 17 for Youth Under 18 forms")

        registration = self._group_by_code(data.accessCode)
        event = registration.event

        token = str(uuid.uuid4())
        form = LiabilityForm(
            event_id=event.id,
            organization_id=event.organization_id,
            group_registration_id=registration.id,
            form_type="youth_u18",
            participant_type="youth_u18",
            participant_first_name=data.firstName,
            participant_last_name=data.lastName,
            participant_preferred_name=data.preferredName,
            participant_age=data.age,
            participant_gender=data.gender,
            t_shirt_size=data.tShirtSize,
            parent_email=data.parentEmail,
            parent_token=token,
            parent_token_expires_at=datetime.utcnow() + timedelta(days=PARENT_LINK_EXPIRY_DAYS),
        )
        self.db.add(form)
        self.db.commit()
        self.db.refresh(form)
        logger.info(f"📥 Youth U18 form {form.id} started for group {registration.id}; parent link sent")

        participant_name = f"{data.firstName} {data.lastName}"
        email_args = dict(
            organization_id=event.organization_id,
            event_id=event.id,
            group_registration_id=registration.id,
            to=data.parentEmail,
            participant_name=participant_name,
            event_name=event.name,
            consent_url=f"{FRONTEND_URL}/poros/parent/{token}",
            organization_name=self._organization_name(event.organization_id),
        )
        response = {
            "success": True,
            "formId": form.public_id,
            "message": f"A link has been sent to {data.parentEmail} to complete the form.",
        }
        return response, email_args

    def _form_by_token(self, token: str) -> LiabilityForm:
        form = self.db.query(LiabilityForm).filter(LiabilityForm.parent_token == token).first()
        if not form:
            raise HTTPException(status_code=404, detail="Invalid token")
        if form.parent_token_expires_at and datetime.utcnow() > form.parent_token_expires_at:
            raise HTTPException(status_code=410, detail="This link has expired")
        self._require_forms_enabled(self.db.get(Event, form.event_id))
        return form

    def get_parent_form(self, token: str) -> dict:
        form = self._form_by_token(token)
        event = self.db.get(Event, form.event_id)
        return {
            "form": form_to_dict(form),
            "event": {"name": event.name, "startDate": event.start_date, "endDate": event.end_date},
            "organizationName": self._organization_name(form.organization_id),
        }

    def complete_parent_form(self, token: str, data: ParentFormComplete, ip_address: str, user_agent: str) -> tuple:
        """Returns (response, [send_liability_form_completed args])"""
        form = self._form_by_token(token)
        if form.completed:
            raise HTTPException(status_code=400, detail="This form has already been completed")

        registration = self.db.get(GroupRegistration, form.group_registration_id)
        try:
            for key, value in data.medical_columns().items():
                setattr(form, key, value)
            form.signature_data = build_signature_data(data, ip_address, user_agent)
            form.completed = True
            form.completed_at = datetime.utcnow()
            form.completed_by_email = form.parent_email
            self._add_participant(registration, form)
            self.db.commit()
        except Exception as e:
            logger.error(f"❌ Failed to complete parent form {form.id}: {e}")
            self.db.rollback()
            raise HTTPException(status_code=500, detail="Failed to complete form")

        logger.info(f"✅ Parent completed youth form {form.id}")
        emails = self._completion_emails(registration, form, form.parent_email, "Parent/Guardian")
        return {"success": True, "formId": form.public_id, "participantId": form.participant_id}, emails

    # ========================================================================
    # ADULTS AND CLERGY
    # ========================================================================

    def submit_adult(self, data: AdultFormSubmit, ip_address: str, user_agent: str) -> tuple:
        registration = self._group_by_code(data.accessCode)
        event = registration.event

        try:
            form = LiabilityForm(
                event_id=event.id,
                organization_id=event.organization_id,
                group_registration_id=registration.id,
                form_type="youth_o18_chaperone",
                participant_type=data.participantType,
                participant_first_name=data.firstName,
                participant_last_name=data.lastName,
                participant_preferred_name=data.preferredName,
                participant_age=data.age,
                participant_gender=data.gender,
                participant_email=data.email,
                participant_phone=data.phone,
                t_shirt_size=data.tShirtSize,
                signature_data=build_signature_data(data, ip_address, user_agent),
                completed=True,
                completed_at=datetime.utcnow(),
                completed_by_email=data.email,
                **data.medical_columns(),
            )
            self.db.add(form)
            self.db.flush()
            participant = self._add_participant(registration, form)

            if data.participantType == "chaperone" and data.safeEnvironment:
                self.db.add(
                    SafeEnvironmentCertificate(
                        event_id=event.id,
                        organization_id=event.organization_id,
                        liability_form_id=form.id,
                        participant_id=participant.id,
                        program_name=data.safeEnvironment.programName,
                        completion_date=data.safeEnvironment.completionDate,
                        expiration_date=data.safeEnvironment.expirationDate,
                    )
                )
            self.db.commit()
        except Exception as e:
            logger.error(f"❌ Failed to save adult form for group {registration.id}: {e}")
            self.db.rollback()
            raise HTTPException(status_code=500, detail="Failed to submit form")

        logger.info(f"✅ {data.participantType} form {form.id} completed for group {registration.id}")
        emails = self._completion_emails(registration, form, data.email, data.firstName)
        return {"success": True, "formId": form.public_id, "participantId": form.participant_id}, emails

    def submit_clergy(self, data: ClergyFormSubmit, ip_address: str, user_agent: str) -> tuple:
        registration = self._group_by_code(data.accessCode)
        event = registration.event

        try:
            form = LiabilityForm(
                event_id=event.id,
                organization_id=event.organization_id,
                group_registration_id=registration.id,
                form_type="clergy",
                participant_type="priest",
                participant_first_name=data.firstName,
                participant_last_name=data.lastName,
                participant_email=data.email,
                participant_phone=data.phone,
                participant_gender="male",
                t_shirt_size=data.tShirtSize,
                clergy_title=data.clergyTitle,
                faith_facility=data.faithFacility,
                signature_data=build_signature_data(data, ip_address, user_agent),
                completed=True,
                completed_at=datetime.utcnow(),
                completed_by_email=data.email,
                **data.medical_columns(),
            )
            self.db.add(form)
            self.db.flush()
            self._add_participant(registration, form)
            self.db.commit()
        except Exception as e:
            logger.error(f"❌ Failed to save clergy form for group {registration.id}: {e}")
            self.db.rollback()
            raise HTTPException(status_code=500, detail="Failed to submit form")

        logger.info(f"✅ Clergy form {form.id} completed for group {registration.id}")
        emails = self._completion_emails(registration, form, data.email, f"{data.clergyTitle} {data.lastName}")
        return {"success": True, "formId": form.public_id, "participantId": form.participant_id}, emails

    # ========================================================================
    # ADMIN
    # ========================================================================

    def list_forms(
        self, event_id: int, user: User, completed: Optional[bool] = None, form_type: Optional[str] = None
    ) -> dict:
        event = get_event_for_user(self.db, event_id, user)
        query = self.db.query(LiabilityForm).filter(LiabilityForm.event_id == event.id)
        if completed is not None:
            query = query.filter(LiabilityForm.completed == completed)
        if form_type and form_type != "all":
            query = query.filter(LiabilityForm.form_type == form_type)
        forms = query.order_by(LiabilityForm.created_at.desc(), LiabilityForm.id.desc()).all()

        return {
            "forms": [form_to_dict(f) for f in forms],
            "stats": {
                "total": len(forms),
                "completed": sum(1 for f in forms if f.completed),
                "pending": sum(1 for f in forms if not f.completed),
            },
        }

    def get_form_pdf(self, event_id: int, form_id: int, user: User) -> tuple:
        """(pdf bytes, filename)"""
        event = get_event_for_user(self.db, event_id, user)
        form = (
            self.db.query(LiabilityForm)
            .filter(LiabilityForm.id == form_id, LiabilityForm.event_id == event.id)
            .first()
        )
        if not form:
            raise HTTPException(status_code=404, detail="Liability form not found")
        if not form.completed:
            raise HTTPException(status_code=400, detail="This form has not been completed yet")

        pdf_bytes = LiabilityFormPDFGenerator(form, event).generate()
        filename = f"liability-{form.participant_last_name}-{form.participant_first_name}-{form.id}.pdf"
        return pdf_bytes, sanitize_filename(filename)

    def list_certificates(self, event_id: int, user: User, status: Optional[str] = None) -> list[dict]:
        event = get_event_for_user(self.db, event_id, user)
        query = self.db.query(SafeEnvironmentCertificate).filter(SafeEnvironmentCertificate.event_id == event.id)
        if status and status != "all":
            query = query.filter(SafeEnvironmentCertificate.status == status)
        return [certificate_to_dict(c) for c in query.order_by(SafeEnvironmentCertificate.created_at.desc()).all()]

    def review_certificate(self, event_id: int, certificate_id: int, data: CertificateReview, user: User) -> dict:
        event = get_event_for_user(self.db, event_id, user)
        certificate = (
            self.db.query(SafeEnvironmentCertificate)
            .filter(SafeEnvironmentCertificate.id == certificate_id, SafeEnvironmentCertificate.event_id == event.id)
            .first()
        )
        if not certificate:
            raise HTTPException(status_code=404, detail="Certificate not found")

        certificate.status = data.status
        certificate.verified_by_id = user.id
        certificate.verified_at = datetime.utcnow()
        if data.notes is not None:
            certificate.notes = data.notes
        self.db.commit()
        self.db.refresh(certificate)
        logger.info(f"✅ Certificate {certificate.id} marked {data.status} by {user.email}")
        return certificate_to_dict(certificate)
