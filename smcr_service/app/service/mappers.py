"""
Row mappers: raw API rows in, typed records out.

The backend has returned both snake_case columns and camelCase JSON over its
lifetime, and JSON columns sometimes arrive still encoded as strings. Every
mapper here normalises keys first, then reads each field with an explicit
fallback. None of them raise on malformed input; a bad date becomes ``None``,
a garbage JSON column becomes ``[]`` or ``{}``.
"""
import datetime
import json
import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import TypeAdapter, ValidationError

from smcr_service.app.catalogs.workflow_templates import get_workflow_template
from smcr_service.app.models.assessment import FitnessAssessmentRecord, FitnessAssessmentResponse
from smcr_service.app.models.breach import BreachTimelineEntry, ConductBreach
from smcr_service.app.models.documents import DocumentMetadata, WorkflowDocument
from smcr_service.app.models.firm import Firm, utc_now_iso
from smcr_service.app.models.group_entity import GroupEntity
from smcr_service.app.models.person import (
    FcaControlFunction,
    FcaVerification,
    PersonAssessment,
    PersonRecord,
    TrainingPlanItem,
)
from smcr_service.app.models.role import RoleAssignment
from smcr_service.app.models.workflow import (
    WorkflowChecklistItem,
    WorkflowFieldOption,
    WorkflowInstance,
    WorkflowStepField,
    WorkflowStepInstance,
)
from smcr_service.app.models.workflow_drafts import StepDraft

from .training import calculate_training_completion

logger = logging.getLogger(__name__)

RawRow = Mapping[str, Any]

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")

# Step payloads stored before drafts were tagged with ``kind`` keep each draft under its own key
LEGACY_DRAFT_KINDS = (
    "fp_checklist",
    "reference_request",
    "criminal_check",
    "training_plan",
    "statement_of_responsibilities",
)

_step_draft_adapter = TypeAdapter(StepDraft)


# --- Coercion helpers ---

def to_snake(key: str) -> str:
    return _CAMEL_BOUNDARY.sub(r"_\1", key).lower()


def normalize_keys(value: Any) -> Any:
    """Recursively rewrites mapping keys to snake_case."""
    if isinstance(value, Mapping):
        return {to_snake(str(k)): normalize_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [normalize_keys(item) for item in value]
    return value


def to_iso_string(value: Any) -> Optional[str]:
    """Normalises any date-like value to ISO 8601, or ``None`` if it cannot be parsed.

    Date-only inputs stay date-only (``2024-01-01``); timestamps without an
    offset are taken as UTC. Numbers are epoch milliseconds.
    """
    if value is None or value == "":
        return None
    try:
        if isinstance(value, bool):
            return None
        if isinstance(value, datetime.datetime):
            parsed = value
        elif isinstance(value, datetime.date):
            return value.isoformat()
        elif isinstance(value, (int, float)):
            parsed = datetime.datetime.fromtimestamp(value / 1000, tz=datetime.UTC)
        elif isinstance(value, str):
            text = value.strip()
            if len(text) == 10:
                return datetime.date.fromisoformat(text).isoformat()
            parsed = datetime.datetime.fromisoformat(text)
        else:
            return None
    except (ValueError, OverflowError, OSError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.UTC)
    return parsed.isoformat()


def parse_iso(value: Any) -> Optional[datetime.datetime]:
    """Parses a value accepted by ``to_iso_string`` into an aware datetime."""
    normalised = to_iso_string(value)
    if normalised is None:
        return None
    if len(normalised) == 10:
        return datetime.datetime.combine(datetime.date.fromisoformat(normalised), datetime.time(), datetime.UTC)
    return datetime.datetime.fromisoformat(normalised)


def parse_json_array(value: Any) -> List[Any]:
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            return []
        return parsed if isinstance(parsed, list) else []
    return []


def parse_json_object(value: Any) -> Dict[str, Any]:
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def to_optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text != "" else None


def to_str(value: Any, default: str = "") -> str:
    return default if value is None else str(value)


def to_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return int(value)
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default


def to_optional_float(value: Any) -> Optional[float]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "t")
    return bool(value)


def to_optional_bool(value: Any) -> Optional[bool]:
    return None if value is None else to_bool(value)


def to_choice(value: Any, allowed: Iterable[str], default: Any) -> Any:
    return value if isinstance(value, str) and value in allowed else default


def _row(raw: Any) -> Dict[str, Any]:
    return normalize_keys(parse_json_object(raw))


def _first(row: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if row.get(key) is not None:
            return row[key]
    return None


# --- Firms, people, documents, training ---

def map_firm(raw: RawRow) -> Firm:
    row = _row(raw)
    return Firm(
        id=to_str(row.get("id")),
        name=to_optional_str(row.get("name")) or "Unnamed Firm",
        created_at=to_iso_string(row.get("created_at")) or utc_now_iso(),
        authorization_project_id=to_optional_str(row.get("authorization_project_id")),
        authorization_project_name=to_optional_str(row.get("authorization_project_name")),
    )


def map_fca_verification(raw: Any) -> Optional[FcaVerification]:
    row = _row(raw)
    if not row:
        return None
    control_functions = []
    for entry in parse_json_array(row.get("control_functions")):
        cf = _row(entry)
        if not cf:
            continue
        control_functions.append(FcaControlFunction(
            function=to_str(cf.get("function")),
            firm_name=to_str(cf.get("firm_name")),
            frn=to_str(cf.get("frn")),
            status=to_str(cf.get("status")),
            effective_from=to_iso_string(cf.get("effective_from")) or to_str(cf.get("effective_from")),
            effective_to=to_iso_string(cf.get("effective_to")),
        ))
    return FcaVerification(
        status=to_str(row.get("status"), "unknown"),
        # Unparseable timestamps are left empty so the record counts as stale
        last_checked=to_iso_string(row.get("last_checked")) or "",
        name=to_optional_str(row.get("name")),
        control_functions=control_functions,
        has_enforcement_history=to_bool(row.get("has_enforcement_history")),
    )


def map_training_item(raw: RawRow) -> TrainingPlanItem:
    row = _row(raw)
    return TrainingPlanItem(
        id=to_str(row.get("id")),
        module_id=to_str(row.get("module_id")),
        title=to_optional_str(row.get("title")) or "Untitled module",
        required=to_bool(row.get("required")),
        role_context=to_str(row.get("role_context")),
        status=to_choice(row.get("status"), ("not_started", "in_progress", "completed"), "not_started"),
        due_date=to_iso_string(row.get("due_date")),
    )


def map_person(raw: RawRow, training_rows: Iterable[RawRow] = ()) -> PersonRecord:
    row = _row(raw)
    assessment_row = _row(row.get("assessment"))
    training_plan = [map_training_item(item) for item in training_rows]
    if not training_plan:
        training_plan = [map_training_item(item) for item in parse_json_array(row.get("training_plan"))]

    completion = to_int(_first(assessment_row, "training_completion") or row.get("training_completion"))
    if training_plan:
        # Stored value can be stale; the plan is authoritative
        completion = calculate_training_completion(training_plan)

    assessment = PersonAssessment(
        status=to_choice(
            _first(assessment_row, "status") or row.get("assessment_status"),
            ("current", "due", "overdue", "not_required"),
            "not_required",
        ),
        last_assessment=to_iso_string(_first(assessment_row, "last_assessment") or row.get("last_assessment")),
        next_assessment=to_iso_string(_first(assessment_row, "next_assessment") or row.get("next_assessment")),
        training_completion=max(0, min(100, completion)),
    )
    created_at = to_iso_string(row.get("created_at")) or utc_now_iso()
    return PersonRecord(
        id=to_str(row.get("id")),
        firm_id=to_str(row.get("firm_id")),
        employee_id=to_str(row.get("employee_id")),
        name=to_optional_str(row.get("name")) or "Unnamed",
        email=to_str(row.get("email")),
        department=to_str(row.get("department")),
        title=to_optional_str(row.get("title")),
        phone=to_optional_str(row.get("phone")),
        address=to_optional_str(row.get("address")),
        line_manager=to_optional_str(row.get("line_manager")),
        start_date=to_iso_string(row.get("start_date")),
        hire_date=to_iso_string(row.get("hire_date")),
        end_date=to_iso_string(row.get("end_date")),
        irn=to_optional_str(row.get("irn")),
        fca_verification=map_fca_verification(row.get("fca_verification")),
        is_psd_individual=to_bool(row.get("is_psd_individual")),
        psd_status=to_choice(row.get("psd_status"), ("active", "inactive", "pending"), None),
        assessment=assessment,
        training_plan=training_plan,
        created_at=created_at,
        updated_at=to_iso_string(row.get("updated_at")) or created_at,
    )


def map_document(raw: RawRow) -> DocumentMetadata:
    row = _row(raw)
    return DocumentMetadata(
        id=to_str(row.get("id")),
        person_id=to_str(row.get("person_id")),
        category=to_choice(row.get("category"), ("cv", "dbs", "reference", "qualification", "id", "other"), "other"),
        name=to_optional_str(row.get("name")) or "Untitled document",
        type=to_optional_str(row.get("type")) or "application/octet-stream",
        size=to_int(row.get("size")),
        uploaded_at=to_iso_string(row.get("uploaded_at")) or utc_now_iso(),
        notes=to_optional_str(row.get("notes")),
    )


# --- Roles ---

def map_role(raw: RawRow) -> RoleAssignment:
    row = _row(raw)
    assigned_at = to_iso_string(row.get("assigned_at")) or utc_now_iso()
    return RoleAssignment(
        id=to_str(row.get("id")),
        firm_id=to_str(row.get("firm_id")),
        person_id=to_str(row.get("person_id")),
        function_id=to_str(row.get("function_id")),
        function_type=to_choice(row.get("function_type"), ("SMF", "CF"), "SMF"),
        function_label=to_optional_str(row.get("function_label")) or to_str(row.get("function_id")),
        entity=to_optional_str(row.get("entity")),
        start_date=to_iso_string(row.get("start_date")) or assigned_at[:10],
        end_date=to_iso_string(row.get("end_date")),
        assessment_date=to_iso_string(row.get("assessment_date")),
        approval_status=to_choice(row.get("approval_status"), ("draft", "pending", "approved", "rejected"), "draft"),
        notes=to_optional_str(row.get("notes")),
        assigned_at=assigned_at,
        updated_at=to_iso_string(row.get("updated_at")) or assigned_at,
    )


# --- Workflows ---

def map_draft(raw: Any, kind: Optional[str] = None) -> Optional[StepDraft]:
    row = _row(raw)
    if not row:
        return None
    if kind is not None:
        row["kind"] = kind
    if not row.get("last_updated"):
        row["last_updated"] = utc_now_iso()
    try:
        return _step_draft_adapter.validate_python(row)
    except ValidationError as e:
        logger.warning(f"Discarding unreadable step draft of kind {row.get('kind')}: {e.error_count()} errors")
        return None


def _map_field(raw: Any) -> Optional[WorkflowStepField]:
    row = _row(raw)
    if not row.get("id"):
        return None
    options = None
    if row.get("options") is not None:
        options = []
        for option in parse_json_array(row.get("options")):
            option_row = _row(option)
            if option_row.get("value") is not None:
                options.append(WorkflowFieldOption(
                    value=to_str(option_row.get("value")),
                    label=to_str(option_row.get("label"), to_str(option_row.get("value"))),
                ))
    value = row.get("value")
    if not isinstance(value, (bool, str)) and value is not None:
        value = str(value)
    return WorkflowStepField(
        id=to_str(row.get("id")),
        label=to_str(row.get("label"), to_str(row.get("id"))),
        type=to_choice(row.get("type"), ("text", "textarea", "select", "date", "boolean"), "text"),
        required=to_bool(row.get("required")),
        helper_text=to_optional_str(row.get("helper_text")),
        options=options,
        value=value,
    )


def map_workflow_step(raw: Any) -> WorkflowStepInstance:
    row = _row(raw)
    form = None
    if row.get("form") is not None:
        form = [field for field in (_map_field(item) for item in parse_json_array(row.get("form"))) if field]
    checklist = None
    if row.get("checklist") is not None:
        checklist = []
        for item in parse_json_array(row.get("checklist")):
            item_row = _row(item)
            if item_row.get("id") is None:
                continue
            checklist.append(WorkflowChecklistItem(
                id=to_str(item_row.get("id")),
                text=to_str(item_row.get("text")),
                completed=to_bool(item_row.get("completed")),
            ))

    draft = None
    if row.get("draft") is not None:
        draft = map_draft(row.get("draft"))
    else:
        for kind in LEGACY_DRAFT_KINDS:
            if row.get(kind) is not None:
                draft = map_draft(row.get(kind), kind)
                break

    expected = row.get("expected_evidence")
    return WorkflowStepInstance(
        id=to_optional_str(row.get("id")) or f"wfstep-{to_str(row.get('template_step_id'), 'unknown')}",
        template_step_id=to_optional_str(row.get("template_step_id")),
        title=to_optional_str(row.get("title")) or "Untitled step",
        description=to_optional_str(row.get("description")),
        status="completed" if row.get("status") == "completed" else "pending",
        assigned_to=to_optional_str(row.get("assigned_to")),
        completed_at=to_iso_string(row.get("completed_at")),
        notes=to_optional_str(row.get("notes")),
        expected_evidence=[to_str(e) for e in parse_json_array(expected)] if expected is not None else None,
        form=form,
        checklist=checklist,
        draft=draft,
    )


def map_workflow(raw: RawRow) -> WorkflowInstance:
    row = _row(raw)
    template_id = to_str(row.get("template_id"))
    template = get_workflow_template(template_id)
    return WorkflowInstance(
        id=to_str(row.get("id")),
        firm_id=to_str(row.get("firm_id")),
        template_id=template_id,
        name=to_optional_str(row.get("name")) or (template.title if template else "Untitled workflow"),
        summary=to_str(row.get("summary"), template.summary if template else ""),
        owner_person_id=to_optional_str(row.get("owner_person_id")),
        owner_name=to_optional_str(row.get("owner_name")),
        launched_at=to_iso_string(row.get("launched_at")) or utc_now_iso(),
        due_date=to_iso_string(row.get("due_date")),
        status=to_choice(row.get("status"), ("not_started", "in_progress", "completed"), "not_started"),
        steps=[map_workflow_step(step) for step in parse_json_array(row.get("steps"))],
        success_criteria=[to_str(item) for item in parse_json_array(row.get("success_criteria"))],
        trigger=to_optional_str(_first(row, "trigger", "trigger_event")),
    )


def map_workflow_document(raw: RawRow) -> WorkflowDocument:
    row = _row(raw)
    return WorkflowDocument(
        id=to_str(row.get("id")),
        firm_id=to_str(row.get("firm_id")),
        workflow_id=to_str(row.get("workflow_id")),
        step_id=to_str(row.get("step_id")),
        name=to_optional_str(row.get("name")) or "Untitled document",
        type=to_optional_str(row.get("type")) or "application/octet-stream",
        size=to_int(row.get("size")),
        uploaded_at=to_iso_string(row.get("uploaded_at")) or utc_now_iso(),
        summary=to_optional_str(row.get("summary")),
        status="reviewed" if row.get("status") == "reviewed" else "pending",
    )


# --- Assessments, breaches, group entities ---

def map_assessment(raw: RawRow) -> FitnessAssessmentRecord:
    row = _row(raw)
    responses = []
    for item in parse_json_array(row.get("responses")):
        response_row = _row(item)
        if response_row.get("question_id") is None:
            continue
        value = response_row.get("value")
        responses.append(FitnessAssessmentResponse(
            question_id=to_str(response_row.get("question_id")),
            value=None if value is None else str(value),
            notes=to_optional_str(response_row.get("notes")),
        ))
    created_at = to_iso_string(row.get("created_at")) or utc_now_iso()
    return FitnessAssessmentRecord(
        id=to_str(row.get("id")),
        firm_id=to_str(row.get("firm_id")),
        person_id=to_str(row.get("person_id")),
        person_name=to_optional_str(row.get("person_name")) or "Unnamed",
        person_role=to_optional_str(row.get("person_role")),
        status=to_choice(row.get("status"), ("draft", "in_review", "completed"), "draft"),
        assessment_date=to_iso_string(row.get("assessment_date")),
        next_due_date=to_iso_string(row.get("next_due_date")),
        reviewer=to_optional_str(row.get("reviewer")),
        overall_determination=to_choice(
            row.get("overall_determination"), ("Fit and Proper", "Conditional", "Not Fit and Proper"), None
        ),
        conditions=[to_str(item) for item in parse_json_array(row.get("conditions"))],
        responses=responses,
        created_at=created_at,
        updated_at=to_iso_string(row.get("updated_at")) or created_at,
    )


def map_timeline_entry(raw: Any) -> Optional[BreachTimelineEntry]:
    row = _row(raw)
    if not row:
        return None
    return BreachTimelineEntry(
        id=to_optional_str(row.get("id")) or f"timeline-{to_str(row.get('date'), 'undated')}",
        date=to_iso_string(row.get("date")) or utc_now_iso(),
        action=to_optional_str(row.get("action")) or "Update",
        description=to_str(row.get("description")),
        performed_by=to_optional_str(row.get("performed_by")),
    )


def map_breach(raw: RawRow) -> ConductBreach:
    row = _row(raw)
    created_at = to_iso_string(row.get("created_at")) or utc_now_iso()
    timeline = [entry for entry in (map_timeline_entry(item) for item in parse_json_array(row.get("timeline"))) if entry]
    return ConductBreach(
        id=to_str(row.get("id")),
        firm_id=to_str(row.get("firm_id")),
        person_id=to_str(row.get("person_id")),
        person_name=to_optional_str(row.get("person_name")) or "Unnamed",
        rule_id=to_str(row.get("rule_id")),
        rule_name=to_str(row.get("rule_name"), to_str(row.get("rule_id"))),
        date_identified=to_iso_string(row.get("date_identified")) or created_at,
        date_occurred=to_iso_string(row.get("date_occurred")),
        description=to_str(row.get("description")),
        severity=to_choice(row.get("severity"), ("minor", "serious", "severe"), "minor"),
        status=to_choice(row.get("status"), ("open", "investigating", "resolved", "escalated"), "open"),
        investigator=to_optional_str(row.get("investigator")),
        findings=to_optional_str(row.get("findings")),
        recommendations=[to_str(item) for item in parse_json_array(row.get("recommendations"))],
        disciplinary_action=to_optional_str(row.get("disciplinary_action")),
        training_required=to_optional_bool(row.get("training_required")),
        fca_notification=to_optional_bool(row.get("fca_notification")),
        fca_notification_date=to_iso_string(row.get("fca_notification_date")),
        resolution_date=to_iso_string(row.get("resolution_date")),
        lessons_learned=to_optional_str(row.get("lessons_learned")),
        timeline=timeline,
        created_at=created_at,
        updated_at=to_iso_string(row.get("updated_at")) or created_at,
    )


def map_group_entity(raw: RawRow) -> GroupEntity:
    row = _row(raw)
    return GroupEntity(
        id=to_str(row.get("id")),
        name=to_optional_str(row.get("name")) or "Unnamed Entity",
        type=to_choice(row.get("type"), ("holding", "subsidiary", "parent", "associate", "branch"), "subsidiary"),
        linked_firm_id=to_optional_str(row.get("linked_firm_id")),
        linked_project_id=to_optional_str(row.get("linked_project_id")),
        linked_project_name=to_optional_str(row.get("linked_project_name")),
        parent_id=to_optional_str(row.get("parent_id")),
        ownership_percent=to_optional_float(row.get("ownership_percent")),
        country=to_optional_str(row.get("country")),
        regulatory_status=to_optional_str(row.get("regulatory_status")),
        is_external=to_optional_bool(row.get("is_external")),
    )


# --- Outbound payloads ---

def person_to_payload(person: PersonRecord) -> Dict[str, Any]:
    payload = person.model_dump(mode="json", exclude={"assessment", "training_plan"})
    payload.update({
        "assessment_status": person.assessment.status,
        "last_assessment": person.assessment.last_assessment,
        "next_assessment": person.assessment.next_assessment,
        "training_completion": person.assessment.training_completion,
    })
    return payload


def training_item_to_payload(item: TrainingPlanItem, person_id: str) -> Dict[str, Any]:
    payload = item.model_dump(mode="json")
    payload["person_id"] = person_id
    return payload


def workflow_steps_to_payload(steps: List[WorkflowStepInstance]) -> List[Dict[str, Any]]:
    return [step.model_dump(mode="json") for step in steps]


def workflow_to_payload(workflow: WorkflowInstance) -> Dict[str, Any]:
    payload = workflow.model_dump(mode="json", exclude={"trigger"})
    payload["trigger_event"] = workflow.trigger
    return payload
