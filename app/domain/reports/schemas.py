"""Report template schemas"""

from typing import Optional

from pydantic import BaseModel, field_validator

REPORT_TYPES = ("registration", "financial", "tshirts", "balances", "medical", "roster", "custom")


def check_name(v):
    if v is not None and not v.strip():
        raise ValueError("Template name is required")
    return v.strip() if v else v


class ReportTemplateCreate(BaseModel):
    name: str
    description: Optional[str] = None
    reportType: str
    configuration: dict = {}
    isPublic: bool = False

    validate_name = field_validator("name")(check_name)

    @field_validator("reportType")
    @classmethod
    def validate_report_type(cls, v):
        if v not in REPORT_TYPES:
            raise ValueError(f"Report type must be one of: {', '.join(REPORT_TYPES)}")
        return v


class ReportTemplateUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    configuration: Optional[dict] = None
    isPublic: Optional[bool] = None

    validate_name = field_validator("name")(check_name)


class ExecuteReportRequest(BaseModel):
    eventId: int
