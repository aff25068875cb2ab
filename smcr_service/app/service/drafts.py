"""
Initial values for the specialised payloads attached to onboarding workflow steps.
"""
from typing import Callable, Dict, Optional

from smcr_service.app.catalogs.core_functions import ALL_SMFS, PRESCRIBED_RESPONSIBILITIES
from smcr_service.app.models.firm import utc_now_iso
from smcr_service.app.models.workflow_drafts import (
    CriminalCheckDraft,
    FpChecklistDraft,
    FpPrescribedMapping,
    FpSmfMapping,
    ReferenceRequestDraft,
    SorResponsibilityDraft,
    StatementOfResponsibilitiesDraft,
    StepDraft,
    TrainingPlanDraft,
)


def create_default_fp_checklist_draft() -> FpChecklistDraft:
    return FpChecklistDraft(
        key_considerations="",
        smf_mappings=[FpSmfMapping(function_id=smf.id) for smf in ALL_SMFS],
        prescribed_mappings=[FpPrescribedMapping(responsibility_id=pr.id) for pr in PRESCRIBED_RESPONSIBILITIES],
        last_updated=utc_now_iso(),
    )


def create_default_reference_request_draft() -> ReferenceRequestDraft:
    return ReferenceRequestDraft(summary_notes="", last_updated=utc_now_iso())


def create_default_criminal_check_draft() -> CriminalCheckDraft:
    return CriminalCheckDraft(
        reference_number="",
        status="not_requested",
        reviewer="",
        adverse_details="",
        follow_up_actions="",
        last_updated=utc_now_iso(),
    )


def create_default_training_plan_draft() -> TrainingPlanDraft:
    return TrainingPlanDraft(summary="", last_updated=utc_now_iso())


def create_default_statement_of_responsibilities_draft() -> StatementOfResponsibilitiesDraft:
    return StatementOfResponsibilitiesDraft(
        responsibilities=[
            SorResponsibilityDraft(id=pr.id, reference=pr.pr_number, description=pr.description, notes="")
            for pr in PRESCRIBED_RESPONSIBILITIES
        ],
        approval_status="draft",
        approval_notes="",
        last_updated=utc_now_iso(),
    )


# Template step ids that carry a specialised draft
DRAFT_FACTORIES_BY_STEP: Dict[str, Callable[[], StepDraft]] = {
    "generate-fp-checklist": create_default_fp_checklist_draft,
    "request-reg-references": create_default_reference_request_draft,
    "schedule-criminal-check": create_default_criminal_check_draft,
    "create-training-plan": create_default_training_plan_draft,
    "draft-sor": create_default_statement_of_responsibilities_draft,
}


def create_default_draft_for_step(template_step_id: str) -> Optional[StepDraft]:
    factory = DRAFT_FACTORIES_BY_STEP.get(template_step_id)
    return factory() if factory else None
