"""
Training-plan arithmetic and the person assessment status derived from F&P outcomes.
"""
import datetime
from typing import Iterable, List, Optional

from smcr_service.app.catalogs.role_training import TrainingModuleDefinition
from smcr_service.app.models.assessment import FitnessAssessmentStatus, OverallDetermination
from smcr_service.app.models.person import AssessmentStatus, TrainingPlanItem

_DETERMINATION_TO_PERSON_STATUS = {
    "Fit and Proper": "current",
    "Conditional": "due",
    "Not Fit and Proper": "overdue",
}


def calculate_training_completion(plan: List[TrainingPlanItem]) -> int:
    if not plan:
        return 0
    completed = sum(1 for item in plan if item.status == "completed")
    # Halves round up: 1 of 8 completed is 13, not 12
    return int(completed * 100 / len(plan) + 0.5)


def merge_training_plan(existing: List[TrainingPlanItem], additions: Iterable[TrainingPlanItem]) -> List[TrainingPlanItem]:
    """Union keyed on item id. Existing items win over additions with the same id."""
    merged = {item.id: item for item in existing}
    for item in additions:
        if item.id not in merged:
            merged[item.id] = item
    return list(merged.values())


def filter_training_plan_by_role(plan: List[TrainingPlanItem], role_id: str) -> List[TrainingPlanItem]:
    return [item for item in plan if item.role_context != role_id]


def build_training_plan_items(
    role_id: str,
    modules: List[TrainingModuleDefinition],
    now: Optional[datetime.datetime] = None,
) -> List[TrainingPlanItem]:
    now = now or datetime.datetime.now(datetime.UTC)
    items = []
    for module in modules:
        due_date = None
        if module.recommended_due_within_days:
            due_date = (now + datetime.timedelta(days=module.recommended_due_within_days)).isoformat()
        items.append(TrainingPlanItem(
            id=f"{role_id}-{module.id}",
            module_id=module.id,
            title=module.title,
            required=module.required,
            role_context=role_id,
            status="not_started",
            due_date=due_date,
        ))
    return items


def derive_person_assessment_status(
    current: AssessmentStatus,
    status: FitnessAssessmentStatus,
    determination: Optional[OverallDetermination],
) -> AssessmentStatus:
    if status == "completed":
        return _DETERMINATION_TO_PERSON_STATUS.get(determination, current)
    if status == "in_review":
        return "due"
    return current
