"""Typed records for the vendor assessment built by the intake form.

Each questionnaire section has its own record whose fields are the ids of the
section's questions. Records reject unknown keys so stray answers never reach
the submission sink.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from blueprint.errors import FieldValueError, UnknownFieldError


class SectionRecord(BaseModel):
    """Base class for the flat per-section answer records."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        return tuple(cls.model_fields)


class BasicInfo(SectionRecord):
    vendor_name: str = ""
    vendor_url: str = ""
    service_description: str = ""
    service_category: str = ""
    contact_name: str = ""
    contact_email: str = ""
    business_justification: str = ""


class DataHandling(SectionRecord):
    stores_pii: bool = False
    pii_types: List[str] = Field(default_factory=list)
    data_retention: str = ""
    data_location: List[str] = Field(default_factory=list)
    encryption_at_rest: bool = False
    encryption_in_transit: bool = False


class AICapabilities(SectionRecord):
    is_ai_service: bool = False
    model_provider: str = ""
    trains_on_user_data: bool = False
    bias_auditing: bool = False
    explainability_features: bool = False


class StudentData(SectionRecord):
    handles_student_data: bool = False
    minimum_age: Optional[int] = 13
    age_gate: bool = False
    parental_consent: bool = False
    educational_purpose: bool = False
    directory_information: bool = False

    @field_validator("minimum_age", mode="before")
    @classmethod
    def blank_age_is_missing(cls, v: Any) -> Any:
        """Treat an emptied number input as no answer."""
        if isinstance(v, str) and not v.strip():
            return None
        return v


class Compliance(SectionRecord):
    certifications: List[str] = Field(default_factory=list)
    privacy_policy: bool = False
    terms_of_service: bool = False
    data_processing_agreement: bool = False
    audit_reports: bool = False
    incident_response: bool = False


class Technical(SectionRecord):
    authentication_methods: List[str] = Field(default_factory=list)
    sso_supported: bool = False
    api_documentation: bool = False
    uptime_guarantee: str = ""
    support_level: str = ""


class VendorAssessment(BaseModel):
    """The in-progress vendor assessment, one record per section."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    basic_info: BasicInfo = Field(default_factory=BasicInfo, alias="basicInfo")
    data_handling: DataHandling = Field(default_factory=DataHandling, alias="dataHandling")
    ai_capabilities: AICapabilities = Field(default_factory=AICapabilities, alias="aiCapabilities")
    student_data: StudentData = Field(default_factory=StudentData, alias="studentData")
    compliance: Compliance = Field(default_factory=Compliance, alias="compliance")
    technical: Technical = Field(default_factory=Technical, alias="technical")

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "VendorAssessment":
        """Validate a decoded payload keyed by section key or attribute name."""

        try:
            return cls.model_validate(dict(payload))
        except ValidationError as exc:
            raise FieldValueError(f"Invalid vendor assessment: {exc}") from exc

    def to_payload(self) -> Dict[str, Any]:
        """Return a JSON-ready dict keyed by section key."""

        return self.model_dump(mode="json", by_alias=True)

    def section(self, section_key: str) -> SectionRecord:
        """Return the record for ``section_key`` (``basicInfo`` or ``basic_info``)."""

        attribute = SECTION_ATTRIBUTES.get(section_key, section_key)
        if attribute not in type(self).model_fields:
            raise UnknownFieldError(f"Unknown assessment section '{section_key}'.")
        return getattr(self, attribute)

    def get_value(self, section_key: str, field_name: str) -> Any:
        record = self.section(section_key)
        if field_name not in type(record).model_fields:
            raise UnknownFieldError(f"Unknown field '{section_key}.{field_name}'.")
        return getattr(record, field_name)

    def set_value(self, section_key: str, field_name: str, value: Any) -> None:
        """Store ``value`` after checking the field exists and accepts it."""

        record = self.section(section_key)
        if field_name not in type(record).model_fields:
            raise UnknownFieldError(f"Unknown field '{section_key}.{field_name}'.")
        try:
            setattr(record, field_name, value)
        except ValidationError as exc:
            raise FieldValueError(
                f"Invalid value for '{section_key}.{field_name}': {exc.errors()[0]['msg']}"
            ) from exc


SECTION_ATTRIBUTES: Dict[str, str] = {
    info.alias or name: name for name, info in VendorAssessment.model_fields.items()
}


def empty_assessment() -> VendorAssessment:
    """Return the defaulted record a new intake form starts from."""

    return VendorAssessment()


__all__ = [
    "AICapabilities",
    "BasicInfo",
    "Compliance",
    "DataHandling",
    "SECTION_ATTRIBUTES",
    "SectionRecord",
    "StudentData",
    "Technical",
    "VendorAssessment",
    "empty_assessment",
]
