"""
Consultation form helpers

A salon's form is a flat list of fields. Conditional children are stored in
the same list and are only shown when their parent's answer matches one of
the parent's rules. Nothing here touches the database.
"""

import mimetypes
from typing import Iterable, Mapping, Optional, Union

from ...config import MAX_IMAGE_UPLOAD_BYTES, MAX_VIDEO_UPLOAD_BYTES
from ..requests.schemas import is_pending_upload
from .schemas import ConsultationFileIn, ConsultationFormConfig, ConsultationFormField

Answer = Union[str, list[str], None]

DEFAULT_SUCCESS_MESSAGE = (
    "Thank you! Your consultation request has been submitted. We'll review it and get back to you soon."
)
DEFAULT_SUBMIT_BUTTON_TEXT = "Submit Consultation"

_MEDIA = "image/*,video/*"

DEFAULT_FIELDS: list[dict] = [
    {"id": "name", "type": "text", "label": "Full Name", "placeholder": "Enter your full name", "required": True, "order": 1},
    {"id": "email", "type": "email", "label": "Email Address", "placeholder": "your.email@example.com", "required": True, "order": 2},
    {"id": "phone", "type": "phone", "label": "Phone Number", "placeholder": "(555) 123-4567", "required": True, "order": 3},
    {
        "id": "service-type",
        "type": "select",
        "label": "Service Type",
        "required": True,
        "options": ["Hair Color", "Extensions", "Chemical Treatment", "Cut & Style", "Other"],
        "order": 4,
    },
    {
        "id": "current-hair",
        "type": "textarea",
        "label": "Current Hair Condition",
        "placeholder": "Describe your current hair (length, color, previous treatments, etc.)",
        "order": 5,
    },
    {
        "id": "desired-result",
        "type": "textarea",
        "label": "Desired Result",
        "placeholder": "What look are you hoping to achieve?",
        "required": True,
        "order": 6,
    },
    {"id": "hair-photo-top", "type": "file", "label": "Hair Photos - Top View", "required": True, "accept": _MEDIA, "order": 7},
    {"id": "hair-photo-front", "type": "file", "label": "Hair Photos - Front View", "required": True, "accept": _MEDIA, "order": 8},
    {"id": "hair-photo-sides", "type": "file", "label": "Hair Photos - Side Views", "accept": _MEDIA, "order": 9},
    {
        "id": "hair-history",
        "type": "textarea",
        "label": "Hair History & Allergies",
        "placeholder": "Previous treatments, allergies, sensitivities, etc.",
        "order": 10,
    },
    {
        "id": "additional-notes",
        "type": "textarea",
        "label": "Additional Notes",
        "placeholder": "Any other information we should know",
        "order": 11,
    },
]


def default_form() -> ConsultationFormConfig:
    return ConsultationFormConfig(
        fields=[ConsultationFormField(**f) for f in DEFAULT_FIELDS],
        successMessage=DEFAULT_SUCCESS_MESSAGE,
        submitButtonText=DEFAULT_SUBMIT_BUTTON_TEXT,
    )


def load_form(raw: Optional[Mapping]) -> ConsultationFormConfig:
    """Salon's stored form, falling back to the default when none is configured"""
    if not raw or not raw.get("fields"):
        return default_form()
    form = ConsultationFormConfig(**raw)
    if not form.successMessage:
        form.successMessage = DEFAULT_SUCCESS_MESSAGE
    if not form.submitButtonText:
        form.submitButtonText = DEFAULT_SUBMIT_BUTTON_TEXT
    return form


def sorted_fields(fields: Iterable[ConsultationFormField]) -> list[ConsultationFormField]:
    """Order by `order`; equal orders keep their stored position"""
    return sorted(fields, key=lambda f: f.order)


def _child_ids(fields: Iterable[ConsultationFormField]) -> set[str]:
    ids = set()
    for field in fields:
        for rule in field.conditionalRules:
            ids.update(rule.showFields)
    return ids


def top_level_fields(fields: Iterable[ConsultationFormField]) -> list[ConsultationFormField]:
    fields = list(fields)
    children = _child_ids(fields)
    return [f for f in sorted_fields(fields) if not f.isConditional and f.id not in children]


def _triggers(answer: Answer, trigger: str) -> bool:
    if isinstance(answer, list):
        return trigger in answer
    return answer is not None and answer == trigger


def visible_fields(
    fields: Iterable[ConsultationFormField], answers: Mapping[str, Answer]
) -> list[ConsultationFormField]:
    """
    Fields the client actually sees for the given answers.

    Each triggered rule's children are spliced directly after their parent,
    recursively. A field is emitted once even if several rules point at it,
    and ids that are not in the form are skipped.
    """
    fields = list(fields)
    by_id = {f.id: f for f in fields}
    result: list[ConsultationFormField] = []
    seen: set[str] = set()

    def visit(field: ConsultationFormField):
        if field.id in seen:
            return
        seen.add(field.id)
        result.append(field)
        for rule in field.conditionalRules:
            if not _triggers(answers.get(field.id), rule.triggerValue):
                continue
            for child_id in rule.showFields:
                child = by_id.get(child_id)
                if child is not None:
                    visit(child)

    for field in top_level_fields(fields):
        visit(field)
    return result


def _is_blank(answer: Answer) -> bool:
    if answer is None:
        return True
    if isinstance(answer, list):
        return not any(a and a.strip() for a in answer)
    return not answer.strip()


def missing_required_fields(
    fields: Iterable[ConsultationFormField],
    answers: Mapping[str, Answer],
    files: Iterable[ConsultationFileIn] = (),
) -> list[str]:
    """Labels of visible required fields left empty. Hidden children never count."""
    files_by_field: dict[str, int] = {}
    for f in files:
        files_by_field[f.fieldId] = files_by_field.get(f.fieldId, 0) + 1

    missing = []
    for field in visible_fields(fields, answers):
        if not field.required:
            continue
        if field.type == "file":
            if not files_by_field.get(field.id):
                missing.append(field.label)
        elif _is_blank(answers.get(field.id)):
            missing.append(field.label)
    return missing


def _is_video(file: ConsultationFileIn) -> bool:
    content_type = file.contentType or mimetypes.guess_type(file.name)[0] or ""
    return content_type.startswith("video/")


def max_upload_bytes(file: ConsultationFileIn) -> int:
    return MAX_VIDEO_UPLOAD_BYTES if _is_video(file) else MAX_IMAGE_UPLOAD_BYTES


def oversized_files(files: Iterable[ConsultationFileIn]) -> list[str]:
    """Names of files over the 10 MB image / 50 MB video caps"""
    return [f.name for f in files if f.size > max_upload_bytes(f)]


def pending_uploads(files: Iterable) -> list:
    """File entries whose upload failed and were stored under a placeholder URL"""
    return [f for f in files if is_pending_upload(f["url"] if isinstance(f, Mapping) else f.url)]


def extract_client_info(answers: Mapping[str, Answer]) -> dict:
    def text(key: str) -> str:
        value = answers.get(key)
        return value.strip() if isinstance(value, str) else ""

    return {"name": text("name"), "email": text("email"), "phone": text("phone")}
