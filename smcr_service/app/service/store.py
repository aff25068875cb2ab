"""
Firm-scoped SM&CR workspace state and the operations that change it.

``SmcrDataStore`` holds everything loaded for the active firm in a single
immutable ``SmcrDataState``. Every mutating operation validates locally, awaits
the remote call, and only then swaps in a new state; a failed remote call
propagates to the caller and its change is never applied locally. Edits to
one record are serialised by a per-record lock.
"""
import asyncio
import datetime
import logging
import re
import time
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, TypeVar

from pydantic import BaseModel

from smcr_service.app.catalogs.core_functions import function_label
from smcr_service.app.catalogs.fitness_framework import get_all_fitness_questions
from smcr_service.app.catalogs.workflow_templates import get_workflow_template
from smcr_service.app.models.assessment import FitnessAssessmentRecord, FitnessAssessmentResponse
from smcr_service.app.models.breach import BreachTimelineEntry, ConductBreach
from smcr_service.app.models.documents import DocumentMetadata, DocumentUpload, WorkflowDocument
from smcr_service.app.models.firm import Firm, new_id, utc_now_iso
from smcr_service.app.models.group_entity import GroupEntity
from smcr_service.app.models.person import PersonAssessment, PersonRecord, TrainingPlanItem, TrainingStatus
from smcr_service.app.models.role import RoleAssignment
from smcr_service.app.models.state import SmcrDataState, SmcrSettings
from smcr_service.app.models.workflow import WorkflowInstance
from smcr_service.app.models.workflow_drafts import (
    CriminalCheckDraft,
    FpChecklistDraft,
    ReferenceRequestDraft,
    StatementOfResponsibilitiesDraft,
    StepDraft,
    TrainingPlanDraft,
)
from smcr_service.app.observability import firm_load_latency_histogram, tracer
from smcr_service.app.service.commands.models import (
    AssessmentResponseUpdate,
    AssessmentStatusUpdate,
    NewAssessmentInput,
    NewBreachInput,
    NewGroupEntityInput,
    NewPersonInput,
    NewRoleInput,
    NewTimelineEntryInput,
    WorkflowChecklistUpdateInput,
    WorkflowFieldUpdateInput,
    WorkflowLaunchInput,
    WorkflowStepUpdateInput,
)
from smcr_service.app.service.exceptions import (
    FirmNotSelectedError,
    ImmutableTimelineError,
    PersonNotFoundError,
    RoleOverlapError,
    WorkflowNotFoundError,
    WorkflowTemplateNotFoundError,
)
from smcr_service.app.service.interfaces.register_lookup_client import AbstractRegisterLookupClient
from smcr_service.app.service.mappers import (
    map_assessment,
    map_breach,
    map_document,
    map_firm,
    map_group_entity,
    map_person,
    map_role,
    map_workflow,
    map_workflow_document,
    parse_iso,
    parse_json_array,
    person_to_payload,
    training_item_to_payload,
    workflow_steps_to_payload,
    workflow_to_payload,
)
from smcr_service.app.service.strategies.training_strategies import get_training_modules_for_role
from smcr_service.app.service.training import (
    build_training_plan_items,
    calculate_training_completion,
    derive_person_assessment_status,
    filter_training_plan_by_role,
    merge_training_plan,
)
from smcr_service.app.service.workflows import (
    StepTransform,
    apply_to_step,
    checklist_transform,
    draft_transform,
    field_value_transform,
    instantiate_workflow,
    step_status_transform,
    summarise_evidence,
    with_recomputed_status,
)
from smcr_service.infrastructure.smcr_api_client import SmcrApiClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

OPEN_ENDED_ROLE_END = datetime.date(2099, 12, 31)
FUTURE_TIMESTAMP_TOLERANCE = datetime.timedelta(minutes=5)
_EMPLOYEE_ID = re.compile(r"EMP(\d+)", re.IGNORECASE)

# Fields callers may not overwrite through the generic update operations
_PROTECTED_FIELDS = {"id", "firm_id", "created_at"}


def _adopt(response: Any, mapper: Callable[[Mapping[str, Any]], T], payload: Dict[str, Any], local: T) -> T:
    """Prefers the backend's echo of a created row, falling back to the locally built record."""
    if isinstance(response, Mapping) and response.get("id"):
        return mapper({**payload, **response})
    return local


def _sanitize_assessment(values: Mapping[str, Any]) -> PersonAssessment:
    return PersonAssessment(
        status=values.get("status") or "not_required",
        last_assessment=values.get("last_assessment"),
        next_assessment=values.get("next_assessment"),
        training_completion=values.get("training_completion") or 0,
    )


def _with_training_plan(person: PersonRecord, plan: List[TrainingPlanItem]) -> PersonRecord:
    assessment = person.assessment.model_copy(update={"training_completion": calculate_training_completion(plan)})
    return person.model_copy(update={"training_plan": plan, "assessment": assessment})


def _role_bounds(start: Any, end: Any) -> tuple:
    start_dt = parse_iso(start)
    end_dt = parse_iso(end)
    return (
        start_dt.date() if start_dt else datetime.date.min,
        end_dt.date() if end_dt else OPEN_ENDED_ROLE_END,
    )


class SmcrDataStore:
    def __init__(self, api: SmcrApiClient, register_client: Optional[AbstractRegisterLookupClient] = None):
        self.api = api
        self.register_client = register_client
        self.state = SmcrDataState()
        self.firms: List[Firm] = []
        self.active_firm_id: Optional[str] = None
        self.is_ready = False
        self.load_error: Optional[str] = None
        self._load_generation = 0
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = {}

    # --- internal helpers ---

    def _replace_state(self, **updates) -> None:
        self.state = self.state.model_copy(update=updates)

    def _lock_for(self, kind: str, entity_id: str) -> asyncio.Lock:
        """Serialises read-modify-write cycles on one entity so overlapping edits build on each other."""
        return self._locks.setdefault((kind, entity_id), asyncio.Lock())

    def _require_firm(self, action: str, message: Optional[str] = None) -> str:
        if not self.active_firm_id:
            raise FirmNotSelectedError(action, message)
        return self.active_firm_id

    def _find_person(self, person_id: str) -> Optional[PersonRecord]:
        return next((p for p in self.state.people if p.id == person_id), None)

    def _find_workflow(self, workflow_id: str) -> Optional[WorkflowInstance]:
        return next((w for w in self.state.workflows if w.id == workflow_id), None)

    def _replace_person(self, person: PersonRecord) -> None:
        self._replace_state(people=[person if p.id == person.id else p for p in self.state.people])

    def _replace_workflow(self, workflow: WorkflowInstance) -> None:
        self._replace_state(workflows=[workflow if w.id == workflow.id else w for w in self.state.workflows])

    async def _fetch_or_empty(self, label: str, fetch: Awaitable[Any]) -> List[Any]:
        try:
            return parse_json_array(await fetch)
        except Exception as e:
            logger.warning(f"Could not load {label}; continuing with an empty list: {e}")
            return []

    def _generate_employee_id(self) -> str:
        highest = 0
        for person in self.state.people:
            match = _EMPLOYEE_ID.search(person.employee_id)
            if match:
                highest = max(highest, int(match.group(1)))
        return f"EMP{highest + 1:03d}"

    # --- firms and loading ---

    async def load_firms(self) -> List[Firm]:
        """Fetches the firm list, keeps or picks an active firm, then loads its workspace."""
        try:
            rows = await self.api.get_firms()
            self.firms = [map_firm(row) for row in parse_json_array(rows)]
        except Exception as e:
            logger.error(f"Failed to load firms: {e}", exc_info=True)
            self.load_error = f"Failed to load firms: {e}"
            self.is_ready = True
            return self.firms

        if not any(firm.id == self.active_firm_id for firm in self.firms):
            self.active_firm_id = self.firms[0].id if self.firms else None
        logger.info(f"Loaded {len(self.firms)} firms; active firm is {self.active_firm_id}")
        await self.load_firm_data()
        return self.firms

    async def set_active_firm(self, firm_id: str) -> None:
        self.active_firm_id = firm_id
        await self.load_firm_data()

    async def load_firm_data(self) -> None:
        """Replaces the whole state tree with a fresh load of the active firm's data."""
        self._load_generation += 1
        generation = self._load_generation
        firm_id = self.active_firm_id
        settings = self.state.settings

        if not firm_id:
            self.state = SmcrDataState(settings=settings)
            self.load_error = None
            self.is_ready = True
            return

        self.is_ready = False
        self.load_error = None
        started = time.perf_counter()
        with tracer.start_as_current_span("smcr.load_firm_data") as span:
            span.set_attribute("firm.id", firm_id)
            try:
                people_rows, role_rows, workflow_rows, assessment_rows, breach_rows, entity_rows = await asyncio.gather(
                    self.api.get_people(firm_id),
                    self.api.get_roles(firm_id),
                    self.api.get_workflows(firm_id),
                    self.api.get_assessments(firm_id),
                    self.api.get_breaches(firm_id),
                    self.api.get_group_entities(),
                )
                people_rows = parse_json_array(people_rows)
                workflow_rows = parse_json_array(workflow_rows)

                person_ids = [str(row.get("id", "")) for row in people_rows if isinstance(row, Mapping)]
                workflow_ids = [str(row.get("id", "")) for row in workflow_rows if isinstance(row, Mapping)]
                per_person = await asyncio.gather(*(
                    asyncio.gather(
                        self._fetch_or_empty(f"documents for person {pid}", self.api.get_person_documents(pid)),
                        self._fetch_or_empty(f"training for person {pid}", self.api.get_training_items(pid)),
                    )
                    for pid in person_ids
                ))
                per_workflow = await asyncio.gather(*(
                    self._fetch_or_empty(f"documents for workflow {wid}", self.api.get_workflow_documents(wid))
                    for wid in workflow_ids
                ))

                people = []
                documents = []
                for row, (document_rows, training_rows) in zip(
                    (r for r in people_rows if isinstance(r, Mapping)), per_person
                ):
                    people.append(map_person(row, training_rows))
                    documents.extend(map_document(doc) for doc in document_rows)

                new_state = SmcrDataState(
                    people=people,
                    documents=documents,
                    roles=[map_role(row) for row in parse_json_array(role_rows)],
                    workflows=[map_workflow(row) for row in workflow_rows if isinstance(row, Mapping)],
                    workflow_documents=[map_workflow_document(doc) for docs in per_workflow for doc in docs],
                    assessments=[map_assessment(row) for row in parse_json_array(assessment_rows)],
                    breaches=[map_breach(row) for row in parse_json_array(breach_rows)],
                    group_entities=[map_group_entity(row) for row in parse_json_array(entity_rows)],
                    settings=settings,
                )
            except Exception as e:
                logger.error(f"Failed to load workspace for firm {firm_id}: {e}", exc_info=True)
                if generation == self._load_generation:
                    self.load_error = f"Failed to load SM&CR data: {e}"
                    self.is_ready = True
                span.record_exception(e)
                return

            if generation != self._load_generation:
                logger.info(f"Discarding stale load for firm {firm_id}; the active firm changed mid-load.")
                return
            self.state = new_state
            self.is_ready = True
            span.set_attribute("people.count", len(new_state.people))
            span.set_attribute("workflows.count", len(new_state.workflows))
        firm_load_latency_histogram.record(time.perf_counter() - started, {"firm.id": firm_id})
        logger.info(f"Loaded workspace for firm {firm_id}: {len(new_state.people)} people, "
                    f"{len(new_state.roles)} roles, {len(new_state.workflows)} workflows")

    async def add_firm(self, name: str) -> Firm:
        trimmed = name.strip() or "Unnamed Firm"
        local = Firm(name=trimmed)
        response = await self.api.create_firm(trimmed)
        firm = _adopt(response, map_firm, local.model_dump(mode="json"), local)
        self.firms = [*self.firms, firm]
        self.active_firm_id = firm.id
        self._load_generation += 1
        self.state = SmcrDataState(settings=self.state.settings)
        self.is_ready = True
        self.load_error = None
        logger.info(f"Created firm {firm.id} ({firm.name}) and made it active")
        return firm

    async def link_authorization_project(self, firm_id: str, project_id: str, project_name: str) -> None:
        await self.api.update_firm(firm_id, {
            "authorization_project_id": project_id,
            "authorization_project_name": project_name,
        })
        self.firms = [
            firm.model_copy(update={"authorization_project_id": project_id, "authorization_project_name": project_name})
            if firm.id == firm_id else firm
            for firm in self.firms
        ]

    async def unlink_authorization_project(self, firm_id: str) -> None:
        await self.api.update_firm(firm_id, {"authorization_project_id": None, "authorization_project_name": None})
        self.firms = [
            firm.model_copy(update={"authorization_project_id": None, "authorization_project_name": None})
            if firm.id == firm_id else firm
            for firm in self.firms
        ]

    # --- people ---

    async def add_person(self, data: NewPersonInput) -> PersonRecord:
        firm_id = self._require_firm("adding a person")
        timestamp = utc_now_iso()

        def _clean(value: Optional[str]) -> Optional[str]:
            return (value or "").strip() or None

        assessment_values = data.assessment.model_dump() if data.assessment else {}
        local = PersonRecord(
            firm_id=firm_id,
            employee_id=self._generate_employee_id(),
            name=data.name.strip(),
            email=data.email.strip(),
            department=data.department,
            title=_clean(data.title),
            phone=_clean(data.phone),
            address=_clean(data.address),
            line_manager=_clean(data.line_manager),
            irn=_clean(data.irn),
            start_date=data.start_date,
            hire_date=data.hire_date or data.start_date,
            end_date=data.end_date,
            is_psd_individual=data.is_psd_individual,
            psd_status=data.psd_status,
            assessment=_sanitize_assessment(assessment_values),
            created_at=timestamp,
            updated_at=timestamp,
        )
        payload = person_to_payload(local)
        response = await self.api.create_person(firm_id, payload)
        person = _adopt(response, map_person, payload, local)
        self._replace_state(people=[*self.state.people, person])
        logger.info(f"Added person {person.id} ({person.employee_id}) to firm {firm_id}")
        return person

    async def update_person(self, person_id: str, updates: Dict[str, Any]) -> PersonRecord:
        updates = {k: v for k, v in updates.items() if k not in _PROTECTED_FIELDS}
        assessment_updates = updates.pop("assessment", None) or {}
        if isinstance(assessment_updates, BaseModel):
            assessment_updates = assessment_updates.model_dump()
        assessment_updates = {k: v for k, v in assessment_updates.items() if v is not None}

        async with self._lock_for("person", person_id):
            person = self._find_person(person_id)
            if person is None:
                raise PersonNotFoundError(person_id)
            merged = {**person.model_dump(), **updates}
            merged["assessment"] = _sanitize_assessment({**person.assessment.model_dump(), **assessment_updates})
            merged["updated_at"] = utc_now_iso()
            updated = PersonRecord.model_validate(merged)
            if updated.training_plan:
                updated = _with_training_plan(updated, updated.training_plan)

            await self.api.update_person(person_id, person_to_payload(updated))
            self._replace_person(updated)
        return updated

    async def remove_person(self, person_id: str) -> None:
        await self.api.delete_person(person_id)
        self._replace_state(
            people=[p for p in self.state.people if p.id != person_id],
            documents=[d for d in self.state.documents if d.person_id != person_id],
            roles=[r for r in self.state.roles if r.person_id != person_id],
            breaches=[b for b in self.state.breaches if b.person_id != person_id],
        )
        logger.info(f"Removed person {person_id} and their documents, roles and breaches")

    async def attach_documents(self, person_id: str, uploads: List[DocumentUpload]) -> List[DocumentMetadata]:
        attached = []
        for upload in uploads:
            local = DocumentMetadata(
                person_id=person_id,
                category=upload.category,
                name=upload.filename,
                type=upload.content_type or "application/octet-stream",
                size=upload.size,
                notes=upload.notes,
            )
            response = await self.api.upload_person_document(person_id, upload)
            document = _adopt(response, map_document, local.model_dump(mode="json"), local)
            # Each upload is already persisted, so reflect it straight away
            self._replace_state(documents=[*self.state.documents, document])
            attached.append(document)
        return attached

    async def remove_document(self, document_id: str) -> None:
        await self.api.delete_document(document_id)
        self._replace_state(documents=[d for d in self.state.documents if d.id != document_id])

    async def update_training_item_status(self, person_id: str, item_id: str, status: TrainingStatus) -> None:
        async with self._lock_for("person", person_id):
            await self.api.update_training_item(person_id, {"id": item_id, "status": status})
            person = self._find_person(person_id)
            if person is None:
                return
            plan = [item.model_copy(update={"status": status}) if item.id == item_id else item for item in person.training_plan]
            self._replace_person(_with_training_plan(person, plan))

    # --- roles ---

    def _check_role_overlap(self, firm_id: str, data: NewRoleInput) -> None:
        new_start = data.start_date
        new_end = data.end_date or OPEN_ENDED_ROLE_END
        for role in self.state.roles:
            if role.person_id != data.person_id or role.function_id != data.function_id or role.firm_id != firm_id:
                continue
            existing_start, existing_end = _role_bounds(role.start_date, role.end_date)
            if new_start <= existing_end and new_end >= existing_start:
                logger.info(f"Rejected role {data.function_id} for person {data.person_id}: overlaps role {role.id}")
                raise RoleOverlapError(role.id, open_ended=role.end_date is None)

    async def assign_role(self, data: NewRoleInput) -> RoleAssignment:
        firm_id = self._require_firm("assigning roles")

        with tracer.start_as_current_span("smcr.assign_role") as span:
            span.set_attribute("firm.id", firm_id)
            span.set_attribute("role.function_id", data.function_id)
            timestamp = utc_now_iso()
            # Overlap check and creation are atomic per person
            async with self._lock_for("person-roles", data.person_id):
                self._check_role_overlap(firm_id, data)
                local = RoleAssignment(
                    firm_id=firm_id,
                    person_id=data.person_id,
                    function_id=data.function_id,
                    function_type=data.function_type,
                    function_label=function_label(data.function_type, data.function_id),
                    entity=data.entity,
                    start_date=data.start_date.isoformat(),
                    end_date=data.end_date.isoformat() if data.end_date else None,
                    assessment_date=data.assessment_date.isoformat() if data.assessment_date else None,
                    approval_status=data.approval_status,
                    notes=data.notes,
                    assigned_at=timestamp,
                    updated_at=timestamp,
                )
                payload = local.model_dump(mode="json")
                response = await self.api.create_role(firm_id, payload)
                role = _adopt(response, map_role, payload, local)
                # The role exists remotely from here on, even if training seeding fails below
                self._replace_state(roles=[*self.state.roles, role])

            modules = get_training_modules_for_role(data.function_id)
            async with self._lock_for("person", data.person_id):
                person = self._find_person(data.person_id)
                if modules and person is not None:
                    existing_ids = {item.id for item in person.training_plan}
                    additions = [
                        item for item in build_training_plan_items(role.id, modules) if item.id not in existing_ids
                    ]
                    if additions:
                        await self.api.create_training_items(
                            data.person_id, [training_item_to_payload(item, data.person_id) for item in additions]
                        )
                    span.set_attribute("training.items_added", len(additions))

                person = self._find_person(data.person_id)
                if person is not None:
                    plan = person.training_plan
                    if modules:
                        plan = merge_training_plan(plan, build_training_plan_items(role.id, modules))
                    updated = _with_training_plan(person, plan).model_copy(update={"updated_at": timestamp})
                    self._replace_person(updated)
        logger.info(f"Assigned {role.function_label} to person {role.person_id} as role {role.id}")
        return role

    async def update_role(self, role_id: str, updates: Dict[str, Any]) -> Optional[RoleAssignment]:
        updates = {k: v for k, v in updates.items() if k not in _PROTECTED_FIELDS}
        async with self._lock_for("role", role_id):
            role = next((r for r in self.state.roles if r.id == role_id), None)
            if role is None:
                return None
            updated = RoleAssignment.model_validate({**role.model_dump(), **updates, "updated_at": utc_now_iso()})
            await self.api.update_role(role_id, updated.model_dump(mode="json"))
            self._replace_state(roles=[updated if r.id == role_id else r for r in self.state.roles])
        return updated

    async def remove_role(self, role_id: str) -> None:
        await self.api.delete_role(role_id)
        role = next((r for r in self.state.roles if r.id == role_id), None)
        if role is None:
            self._replace_state(roles=[r for r in self.state.roles if r.id != role_id])
            return
        async with self._lock_for("person", role.person_id):
            self._replace_state(
                roles=[r for r in self.state.roles if r.id != role_id],
                people=[
                    _with_training_plan(p, filter_training_plan_by_role(p.training_plan, role.id))
                    if p.id == role.person_id else p
                    for p in self.state.people
                ],
            )

    # --- workflows ---

    async def launch_workflow(self, data: WorkflowLaunchInput) -> WorkflowInstance:
        firm_id = self._require_firm("launching workflows")
        template = get_workflow_template(data.template_id)
        if template is None:
            raise WorkflowTemplateNotFoundError(data.template_id)

        with tracer.start_as_current_span("smcr.launch_workflow") as span:
            span.set_attribute("firm.id", firm_id)
            span.set_attribute("template.id", template.id)
            owner = self._find_person(data.owner_person_id) if data.owner_person_id else None
            local = instantiate_workflow(
                template, firm_id, owner=owner, due_date=data.due_date, custom_name=data.custom_name
            )
            payload = workflow_to_payload(local)
            response = await self.api.create_workflow(firm_id, payload)
            workflow = _adopt(response, map_workflow, payload, local)
            span.set_attribute("workflow.id", workflow.id)
        self._replace_state(workflows=[*self.state.workflows, workflow])
        logger.info(f"Launched workflow {workflow.id} from template {template.id} for firm {firm_id}")
        return workflow

    async def _update_step(
        self, workflow_id: str, step_id: str, transform: StepTransform, recompute_status: bool = False
    ) -> Optional[WorkflowInstance]:
        async with self._lock_for("workflow", workflow_id):
            workflow = self._find_workflow(workflow_id)
            if workflow is None:
                logger.debug(f"Workflow {workflow_id} not loaded; step update ignored")
                return None
            updated, changed = apply_to_step(workflow, step_id, transform)
            if not changed:
                return workflow

            payload: Dict[str, Any] = {"steps": workflow_steps_to_payload(updated.steps)}
            if recompute_status:
                updated = with_recomputed_status(updated)
                payload["status"] = updated.status
            await self.api.update_workflow(workflow_id, payload)
            self._replace_workflow(updated)
        return updated

    async def update_workflow_step(self, data: WorkflowStepUpdateInput) -> Optional[WorkflowInstance]:
        return await self._update_step(
            data.workflow_id, data.step_id, step_status_transform(data.status, data.notes), recompute_status=True
        )

    async def update_workflow_field(self, data: WorkflowFieldUpdateInput) -> Optional[WorkflowInstance]:
        return await self._update_step(data.workflow_id, data.step_id, field_value_transform(data.field_id, data.value))

    async def update_workflow_checklist(self, data: WorkflowChecklistUpdateInput) -> Optional[WorkflowInstance]:
        return await self._update_step(
            data.workflow_id, data.step_id, checklist_transform(data.checklist_id, data.completed)
        )

    async def update_step_draft(
        self, workflow_id: str, step_id: str, kind: str, updater: Callable[[StepDraft], StepDraft]
    ) -> Optional[WorkflowInstance]:
        return await self._update_step(workflow_id, step_id, draft_transform(kind, updater))

    async def update_fp_checklist(
        self, workflow_id: str, step_id: str, updater: Callable[[FpChecklistDraft], FpChecklistDraft]
    ) -> Optional[WorkflowInstance]:
        return await self.update_step_draft(workflow_id, step_id, "fp_checklist", updater)

    async def update_reference_request(
        self, workflow_id: str, step_id: str, updater: Callable[[ReferenceRequestDraft], ReferenceRequestDraft]
    ) -> Optional[WorkflowInstance]:
        return await self.update_step_draft(workflow_id, step_id, "reference_request", updater)

    async def update_criminal_check(
        self, workflow_id: str, step_id: str, updater: Callable[[CriminalCheckDraft], CriminalCheckDraft]
    ) -> Optional[WorkflowInstance]:
        return await self.update_step_draft(workflow_id, step_id, "criminal_check", updater)

    async def update_training_plan(
        self, workflow_id: str, step_id: str, updater: Callable[[TrainingPlanDraft], TrainingPlanDraft]
    ) -> Optional[WorkflowInstance]:
        return await self.update_step_draft(workflow_id, step_id, "training_plan", updater)

    async def update_statement_of_responsibilities(
        self,
        workflow_id: str,
        step_id: str,
        updater: Callable[[StatementOfResponsibilitiesDraft], StatementOfResponsibilitiesDraft],
    ) -> Optional[WorkflowInstance]:
        return await self.update_step_draft(workflow_id, step_id, "statement_of_responsibilities", updater)

    async def remove_workflow(self, workflow_id: str) -> None:
        await self.api.delete_workflow(workflow_id)
        self._replace_state(
            workflows=[w for w in self.state.workflows if w.id != workflow_id],
            workflow_documents=[d for d in self.state.workflow_documents if d.workflow_id != workflow_id],
        )

    async def attach_workflow_evidence(self, workflow_id: str, step_id: str, upload: DocumentUpload) -> WorkflowDocument:
        workflow = self._find_workflow(workflow_id)
        if workflow is None:
            raise WorkflowNotFoundError(workflow_id)
        summary, status = summarise_evidence(upload.filename)
        local = WorkflowDocument(
            firm_id=workflow.firm_id,
            workflow_id=workflow_id,
            step_id=step_id,
            name=upload.filename,
            type=upload.content_type or "application/octet-stream",
            size=upload.size,
            summary=summary,
            status=status,
        )
        response = await self.api.upload_workflow_document(workflow_id, upload, step_id, summary=summary, status=status)
        document = _adopt(response, map_workflow_document, local.model_dump(mode="json"), local)
        self._replace_state(workflow_documents=[*self.state.workflow_documents, document])
        logger.info(f"Attached evidence {document.id} to workflow {workflow_id} step {step_id}: {summary}")
        return document

    async def remove_workflow_evidence(self, document_id: str) -> None:
        await self.api.delete_document(document_id)
        self._replace_state(workflow_documents=[d for d in self.state.workflow_documents if d.id != document_id])

    # --- fitness & propriety assessments ---

    async def start_assessment(self, data: NewAssessmentInput) -> FitnessAssessmentRecord:
        firm_id = self._require_firm("starting assessments")
        person = self._find_person(data.person_id)
        if person is None:
            raise PersonNotFoundError(data.person_id)

        responses = [
            FitnessAssessmentResponse(question_id=q.id, value="" if q.type == "text" else None, notes="")
            for q in get_all_fitness_questions()
        ]
        local = FitnessAssessmentRecord(
            firm_id=person.firm_id or firm_id,
            person_id=person.id,
            person_name=person.name,
            person_role=person.title,
            status="draft",
            assessment_date=data.assessment_date,
            next_due_date=data.next_due_date,
            reviewer=data.reviewer,
            responses=responses,
        )
        payload = local.model_dump(mode="json")
        response = await self.api.create_assessment(firm_id, payload)
        record = _adopt(response, map_assessment, payload, local)
        self._replace_state(assessments=[*self.state.assessments, record])

        async with self._lock_for("person", data.person_id):
            person = self._find_person(data.person_id)
            if person is None:
                return record
            person_assessment = person.assessment.model_copy(update={
                "status": "due",
                "last_assessment": data.assessment_date or person.assessment.last_assessment,
                "next_assessment": data.next_due_date or person.assessment.next_assessment,
            })
            updated_person = person.model_copy(update={"assessment": person_assessment})
            await self.api.update_person(person.id, person_to_payload(updated_person))
            self._replace_person(updated_person)
        return record

    async def update_assessment_response(self, data: AssessmentResponseUpdate) -> Optional[FitnessAssessmentRecord]:
        async with self._lock_for("assessment", data.assessment_id):
            record = next((a for a in self.state.assessments if a.id == data.assessment_id), None)
            if record is None:
                return None
            responses = [
                r.model_copy(update={"value": data.value, "notes": data.notes if data.notes is not None else r.notes})
                if r.question_id == data.question_id else r
                for r in record.responses
            ]
            updated = record.model_copy(update={"responses": responses, "updated_at": utc_now_iso()})
            await self.api.update_assessment(record.id, {
                "responses": [r.model_dump(mode="json") for r in responses],
                "updated_at": updated.updated_at,
            })
            self._replace_state(assessments=[updated if a.id == record.id else a for a in self.state.assessments])
        return updated

    async def update_assessment_status(self, data: AssessmentStatusUpdate) -> Optional[FitnessAssessmentRecord]:
        async with self._lock_for("assessment", data.assessment_id):
            record = next((a for a in self.state.assessments if a.id == data.assessment_id), None)
            if record is None:
                return None
            updated = record.model_copy(update={
                "status": data.status,
                "overall_determination": data.overall_determination or record.overall_determination,
                "conditions": data.conditions if data.conditions is not None else record.conditions,
                "assessment_date": data.assessment_date or record.assessment_date,
                "next_due_date": data.next_due_date or record.next_due_date,
                "reviewer": data.reviewer or record.reviewer,
                "updated_at": utc_now_iso(),
            })
            await self.api.update_assessment(record.id, updated.model_dump(mode="json", exclude={"responses"}))
            self._replace_state(assessments=[updated if a.id == record.id else a for a in self.state.assessments])

            # Lock order is assessment then person
            async with self._lock_for("person", updated.person_id):
                person = self._find_person(updated.person_id)
                if person is None:
                    return updated
                person_assessment = person.assessment.model_copy(update={
                    "status": derive_person_assessment_status(
                        person.assessment.status, data.status, updated.overall_determination
                    ),
                    "last_assessment": updated.assessment_date or person.assessment.last_assessment,
                    "next_assessment": updated.next_due_date or person.assessment.next_assessment,
                })
                updated_person = person.model_copy(update={"assessment": person_assessment})
                await self.api.update_person(person.id, person_to_payload(updated_person))
                self._replace_person(updated_person)
        logger.info(f"Assessment {record.id} is {data.status}; person {person.id} now "
                    f"{updated_person.assessment.status}")
        return updated

    async def remove_assessment(self, assessment_id: str) -> None:
        await self.api.delete_assessment(assessment_id)
        self._replace_state(assessments=[a for a in self.state.assessments if a.id != assessment_id])

    # --- conduct breaches ---

    async def add_breach(self, data: NewBreachInput) -> ConductBreach:
        firm_id = self._require_firm("logging breaches", message="No active firm selected")
        timestamp = utc_now_iso()
        local = ConductBreach(
            firm_id=firm_id,
            person_id=data.person_id,
            person_name=data.person_name,
            rule_id=data.rule_id,
            rule_name=data.rule_name,
            date_identified=data.date_identified,
            date_occurred=data.date_occurred,
            description=data.description,
            severity=data.severity,
            status="open",
            timeline=[BreachTimelineEntry(
                date=timestamp,
                action="Breach Reported",
                description=f"Breach of {data.rule_name} reported for {data.person_name}",
            )],
            created_at=timestamp,
            updated_at=timestamp,
        )
        payload = local.model_dump(mode="json")
        response = await self.api.create_breach(firm_id, payload)
        breach = _adopt(response, map_breach, payload, local)
        self._replace_state(breaches=[*self.state.breaches, breach])
        logger.info(f"Logged {breach.severity} breach {breach.id} of {breach.rule_id} for person {breach.person_id}")
        return breach

    async def update_breach(self, breach_id: str, updates: Dict[str, Any]) -> Optional[ConductBreach]:
        if "timeline" in updates:
            raise ImmutableTimelineError(breach_id)
        updates = {k: v for k, v in updates.items() if k not in _PROTECTED_FIELDS}
        async with self._lock_for("breach", breach_id):
            breach = next((b for b in self.state.breaches if b.id == breach_id), None)
            if breach is None:
                return None
            updated = ConductBreach.model_validate({**breach.model_dump(), **updates, "updated_at": utc_now_iso()})
            await self.api.update_breach(breach_id, updated.model_dump(mode="json", exclude={"timeline"}))
            # Timeline entries appended while the update was in flight are kept
            current = next((b for b in self.state.breaches if b.id == breach_id), breach)
            updated = updated.model_copy(update={"timeline": current.timeline})
            self._replace_state(breaches=[updated if b.id == breach_id else b for b in self.state.breaches])
        return updated

    async def add_breach_timeline_entry(self, breach_id: str, data: NewTimelineEntryInput) -> BreachTimelineEntry:
        entry = BreachTimelineEntry(
            date=data.date or utc_now_iso(),
            action=data.action,
            description=data.description,
            performed_by=data.performed_by,
        )
        await self.api.add_breach_timeline_entry(breach_id, entry.model_dump(mode="json"))
        timestamp = utc_now_iso()
        self._replace_state(breaches=[
            b.model_copy(update={"timeline": [*b.timeline, entry], "updated_at": timestamp}) if b.id == breach_id else b
            for b in self.state.breaches
        ])
        return entry

    async def remove_breach(self, breach_id: str) -> None:
        await self.api.delete_breach(breach_id)
        self._replace_state(breaches=[b for b in self.state.breaches if b.id != breach_id])

    # --- group entities ---

    async def add_group_entity(self, data: NewGroupEntityInput) -> GroupEntity:
        local = GroupEntity(id=new_id("entity"), **data.model_dump())
        payload = local.model_dump(mode="json")
        response = await self.api.create_group_entity(payload)
        entity = _adopt(response, map_group_entity, payload, local)
        self._replace_state(group_entities=[*self.state.group_entities, entity])
        return entity

    async def update_group_entity(self, entity_id: str, updates: Dict[str, Any]) -> Optional[GroupEntity]:
        async with self._lock_for("group_entity", entity_id):
            entity = next((e for e in self.state.group_entities if e.id == entity_id), None)
            if entity is None:
                return None
            updated = GroupEntity.model_validate(
                {**entity.model_dump(), **{k: v for k, v in updates.items() if k != "id"}}
            )
            await self.api.update_group_entity(entity_id, updated.model_dump(mode="json"))
            self._replace_state(
                group_entities=[updated if e.id == entity_id else e for e in self.state.group_entities]
            )
        return updated

    async def remove_group_entity(self, entity_id: str) -> None:
        await self.api.delete_group_entity(entity_id)
        self._replace_state(group_entities=[e for e in self.state.group_entities if e.id != entity_id])

    # --- settings and queries ---

    def update_settings(self, **updates) -> SmcrSettings:
        settings = SmcrSettings.model_validate({**self.state.settings.model_dump(), **updates})
        self._replace_state(settings=settings)
        return settings

    def people_for_firm(self, firm_id: Optional[str] = None) -> List[PersonRecord]:
        target = firm_id or self.active_firm_id
        return [p for p in self.state.people if p.firm_id == target]

    def roles_for_person(self, person_id: str) -> List[RoleAssignment]:
        return [r for r in self.state.roles if r.person_id == person_id]

    def find_stale_verifications(self, now: Optional[datetime.datetime] = None) -> List[PersonRecord]:
        """People with an IRN whose register snapshot is missing or older than the threshold.

        A ``last_checked`` more than five minutes in the future is treated as
        unknown clock skew and the record is left alone.
        """
        now = now or datetime.datetime.now(datetime.UTC)
        threshold_days = self.state.settings.verification_stale_threshold_days
        stale = []
        for person in self.people_for_firm():
            if not person.irn:
                continue
            if person.fca_verification is None:
                stale.append(person)
                continue
            checked = parse_iso(person.fca_verification.last_checked)
            if checked is None:
                stale.append(person)
                continue
            if checked - now > FUTURE_TIMESTAMP_TOLERANCE:
                continue
            days_since = (now - checked).days
            if days_since >= threshold_days:
                stale.append(person)
        return stale
