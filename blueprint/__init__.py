"""Library helpers for the AI Blueprint vendor intake application."""

from .errors import (  # noqa: F401
    BlueprintError,
    FieldValueError,
    QuestionnaireSchemaError,
    SubmissionError,
    UnknownFieldError,
)
from .form_store import default_questionnaire, load_questionnaire  # noqa: F401
from .intake_form import IntakeFormController  # noqa: F401
from .risk_flags import evaluate  # noqa: F401
