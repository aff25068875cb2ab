"""
Workflow instantiation from templates and the immutable step transforms applied afterwards.
"""
import logging
from typing import Callable, List, Optional, Tuple

from smcr_service.app.catalogs.workflow_templates import WorkflowFieldDefinition, WorkflowTemplate
from smcr_service.app.models.firm import new_id, utc_now_iso
from smcr_service.app.models.person import PersonRecord
from smcr_service.app.models.workflow import (
    FieldValue,
    WorkflowChecklistItem,
    WorkflowInstance,
    WorkflowStatus,
    WorkflowStepField,
    WorkflowStepInstance,
    WorkflowStepStatus,
)
from smcr_service.app.models.workflow_drafts import StepDraft

from .drafts import create_default_draft_for_step

logger = logging.getLogger(__name__)

AWAITING_REVIEW = "Awaiting review"

StepTransform = Callable[[WorkflowStepInstance], Optional[WorkflowStepInstance]]


def default_field_value(field: WorkflowFieldDefinition) -> FieldValue:
    if field.type == "boolean":
        return False
    if field.type == "select":
        if field.required:
            return ""
        return field.options[0].value if field.options else ""
    return ""


def instantiate_workflow(
    template: WorkflowTemplate,
    firm_id: str,
    owner: Optional[PersonRecord] = None,
    due_date: Optional[str] = None,
    custom_name: Optional[str] = None,
) -> WorkflowInstance:
    steps = []
    for step in template.steps:
        form = None
        if step.form is not None:
            form = [
                WorkflowStepField(
                    id=field.id,
                    label=field.label,
                    type=field.type,
                    required=field.required,
                    helper_text=field.helper_text,
                    options=field.options,
                    value=default_field_value(field),
                )
                for field in step.form
            ]
        checklist = None
        if step.checklist is not None:
            checklist = [
                WorkflowChecklistItem(id=f"{step.id}-check-{index}", text=text, completed=False)
                for index, text in enumerate(step.checklist)
            ]
        steps.append(WorkflowStepInstance(
            id=new_id("wfstep"),
            template_step_id=step.id,
            title=step.title,
            description=step.description,
            expected_evidence=step.expected_evidence,
            status="pending",
            form=form,
            checklist=checklist,
            draft=create_default_draft_for_step(step.id),
        ))

    name = (custom_name or "").strip() or template.title
    return WorkflowInstance(
        id=new_id("workflow"),
        firm_id=firm_id,
        template_id=template.id,
        name=name,
        summary=template.summary,
        owner_person_id=owner.id if owner else None,
        owner_name=owner.name if owner else None,
        launched_at=utc_now_iso(),
        due_date=due_date,
        status="not_started",
        steps=steps,
        success_criteria=list(template.success_criteria),
        trigger=template.trigger,
    )


def derive_workflow_status(steps: List[WorkflowStepInstance]) -> WorkflowStatus:
    completed = sum(1 for step in steps if step.status == "completed")
    if steps and completed == len(steps):
        return "completed"
    if completed > 0:
        return "in_progress"
    return "not_started"


def apply_to_step(
    workflow: WorkflowInstance, step_id: str, transform: StepTransform
) -> Tuple[WorkflowInstance, bool]:
    """Returns a copy of the workflow with one step replaced.

    The transform returns ``None`` when the step lacks whatever it was meant to
    change; the workflow then comes back untouched and the flag is False.
    """
    changed = False
    new_steps = []
    for step in workflow.steps:
        if step.id == step_id:
            updated = transform(step)
            if updated is not None:
                new_steps.append(updated)
                changed = True
                continue
        new_steps.append(step)
    if not changed:
        logger.debug(f"Step {step_id} on workflow {workflow.id} left unchanged")
        return workflow, False
    return workflow.model_copy(update={"steps": new_steps}), True


def step_status_transform(status: Optional[WorkflowStepStatus], notes: Optional[str]) -> StepTransform:
    def _transform(step: WorkflowStepInstance) -> WorkflowStepInstance:
        if status == "completed":
            completed_at = utc_now_iso()
        elif status:
            completed_at = None
        else:
            completed_at = step.completed_at
        return step.model_copy(update={
            "status": status or step.status,
            "notes": notes if notes is not None else step.notes,
            "completed_at": completed_at,
        })
    return _transform


def field_value_transform(field_id: str, value: FieldValue) -> StepTransform:
    def _transform(step: WorkflowStepInstance) -> Optional[WorkflowStepInstance]:
        if not step.form:
            return None
        form = [field.model_copy(update={"value": value}) if field.id == field_id else field for field in step.form]
        return step.model_copy(update={"form": form})
    return _transform


def checklist_transform(checklist_id: str, completed: bool) -> StepTransform:
    def _transform(step: WorkflowStepInstance) -> Optional[WorkflowStepInstance]:
        if not step.checklist:
            return None
        checklist = [
            item.model_copy(update={"completed": completed}) if item.id == checklist_id else item
            for item in step.checklist
        ]
        return step.model_copy(update={"checklist": checklist})
    return _transform


def draft_transform(kind: str, updater: Callable[[StepDraft], StepDraft]) -> StepTransform:
    def _transform(step: WorkflowStepInstance) -> Optional[WorkflowStepInstance]:
        if step.draft is None or step.draft.kind != kind:
            return None
        next_draft = updater(step.draft)
        if next_draft.kind != kind:
            raise ValueError(f"Draft updater changed kind from {kind} to {next_draft.kind}")
        return step.model_copy(update={"draft": next_draft.model_copy(update={"last_updated": utc_now_iso()})})
    return _transform


def with_recomputed_status(workflow: WorkflowInstance) -> WorkflowInstance:
    return workflow.model_copy(update={"status": derive_workflow_status(workflow.steps)})


def summarise_evidence(filename: str) -> Tuple[str, str]:
    """Guesses what an uploaded evidence file is from its name. Returns (summary, status)."""
    lower_name = filename.lower()
    summary = AWAITING_REVIEW
    if "dbs" in lower_name:
        summary = "Detected DBS certificate"
    elif "cv" in lower_name or "resume" in lower_name:
        summary = "Detected CV/Resume"
    elif "reference" in lower_name:
        summary = "Detected regulatory reference"
    status = "pending" if summary == AWAITING_REVIEW else "reviewed"
    return summary, status
