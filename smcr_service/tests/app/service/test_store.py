import asyncio
import datetime
import pytest
from unittest.mock import AsyncMock

from smcr_service.app.catalogs.fitness_framework import get_all_fitness_questions
from smcr_service.app.config import settings
from smcr_service.app.models.breach import ConductBreach
from smcr_service.app.models.documents import DocumentMetadata, DocumentUpload
from smcr_service.app.models.firm import Firm
from smcr_service.app.models.person import FcaVerification, PersonRecord, TrainingPlanItem
from smcr_service.app.models.role import RoleAssignment
from smcr_service.app.service.commands.models import (
    AssessmentStatusUpdate,
    NewAssessmentInput,
    NewBreachInput,
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
    SmcrApiError,
    WorkflowNotFoundError,
    WorkflowTemplateNotFoundError,
)
from smcr_service.app.service.store import SmcrDataStore
from smcr_service.infrastructure.smcr_api_client import SmcrApiClient

FIRM_ID = "firm-1"


def make_person(person_id="person-1", employee_id="EMP001", **overrides) -> PersonRecord:
    data = dict(id=person_id, firm_id=FIRM_ID, employee_id=employee_id, name="Alex Morgan", email="alex@example.com")
    data.update(overrides)
    return PersonRecord(**data)


def make_role(role_id="role-1", person_id="person-1", function_id="smf16", start="2024-01-01", end=None, firm_id=FIRM_ID):
    return RoleAssignment(
        id=role_id, firm_id=firm_id, person_id=person_id, function_id=function_id, function_type="SMF",
        function_label=function_id, start_date=start, end_date=end,
    )


def training_item(item_id, role_id, status="not_started") -> TrainingPlanItem:
    return TrainingPlanItem(id=item_id, module_id=item_id, title=item_id, role_context=role_id, status=status)


@pytest.fixture
def mock_api():
    return AsyncMock(spec=SmcrApiClient)


@pytest.fixture
def store(mock_api):
    store = SmcrDataStore(mock_api)
    store.firms = [Firm(id=FIRM_ID, name="Acme Advisers")]
    store.active_firm_id = FIRM_ID
    store.is_ready = True
    store._replace_state(people=[make_person()])
    return store


# --- Role assignment ---

@pytest.mark.asyncio
async def test_assign_role_rejects_overlap_with_open_ended_role(store, mock_api):
    store._replace_state(roles=[make_role(start="2024-01-01", end=None)])

    with pytest.raises(RoleOverlapError) as exc_info:
        await store.assign_role(NewRoleInput(
            person_id="person-1", function_id="smf16", function_type="SMF",
            start_date=datetime.date(2030, 1, 1), end_date=datetime.date(2030, 6, 1),
        ))

    assert str(exc_info.value) == RoleOverlapError.ALREADY_ASSIGNED
    assert exc_info.value.conflicting_role_id == "role-1"
    mock_api.create_role.assert_not_awaited()
    assert len(store.state.roles) == 1


@pytest.mark.asyncio
async def test_assign_role_rejects_overlap_with_bounded_role(store, mock_api):
    store._replace_state(roles=[make_role(start="2024-01-01", end="2024-12-31")])

    with pytest.raises(RoleOverlapError) as exc_info:
        await store.assign_role(NewRoleInput(
            person_id="person-1", function_id="smf16", function_type="SMF", start_date=datetime.date(2024, 6, 1),
        ))

    assert str(exc_info.value) == RoleOverlapError.PERIOD_OVERLAP
    mock_api.create_role.assert_not_awaited()


@pytest.mark.asyncio
async def test_assign_role_allows_adjacent_period_and_other_firms(store, mock_api):
    store._replace_state(roles=[
        make_role(start="2023-01-01", end="2023-12-31"),
        make_role(role_id="role-other-firm", start="2020-01-01", end=None, firm_id="firm-2"),
    ])

    role = await store.assign_role(NewRoleInput(
        person_id="person-1", function_id="smf16", function_type="SMF", start_date=datetime.date(2024, 1, 1),
    ))

    assert role.start_date == "2024-01-01"
    assert role.end_date is None
    assert len(store.state.roles) == 3
    mock_api.create_role.assert_awaited_once()


@pytest.mark.asyncio
async def test_assign_role_labels_role_and_seeds_training_plan(store, mock_api):
    role = await store.assign_role(NewRoleInput(
        person_id="person-1", function_id="smf16", function_type="SMF", start_date=datetime.date(2024, 1, 1),
    ))

    assert role.function_label == "SMF16 - Compliance Oversight"
    person = store.state.people[0]
    # Two core senior-manager modules plus two SMF16 modules
    assert len(person.training_plan) == 4
    assert all(item.role_context == role.id for item in person.training_plan)
    assert person.training_plan[0].id == f"{role.id}-smcr-duty-of-responsibility"
    assert person.assessment.training_completion == 0

    mock_api.create_training_items.assert_awaited_once()
    person_id, payload = mock_api.create_training_items.await_args.args
    assert person_id == "person-1"
    assert len(payload) == 4
    assert payload[0]["person_id"] == "person-1"


@pytest.mark.asyncio
async def test_assign_role_with_unknown_function_adds_no_training(store, mock_api):
    role = await store.assign_role(NewRoleInput(
        person_id="person-1", function_id="custom-fn", function_type="CF", start_date=datetime.date(2024, 1, 1),
    ))

    assert role.function_label == "custom-fn"
    assert store.state.people[0].training_plan == []
    mock_api.create_training_items.assert_not_awaited()


@pytest.mark.asyncio
async def test_assign_role_requires_active_firm(store, mock_api):
    store.active_firm_id = None

    with pytest.raises(FirmNotSelectedError) as exc_info:
        await store.assign_role(NewRoleInput(
            person_id="person-1", function_id="smf16", function_type="SMF", start_date=datetime.date(2024, 1, 1),
        ))

    assert str(exc_info.value) == "Select a firm before assigning roles"
    mock_api.create_role.assert_not_awaited()


@pytest.mark.asyncio
async def test_assign_role_remote_failure_leaves_state_untouched(store, mock_api):
    mock_api.create_role.side_effect = SmcrApiError(status=500, message="boom")
    before = store.state

    with pytest.raises(SmcrApiError):
        await store.assign_role(NewRoleInput(
            person_id="person-1", function_id="smf16", function_type="SMF", start_date=datetime.date(2024, 1, 1),
        ))

    assert store.state is before


@pytest.mark.asyncio
async def test_assign_role_keeps_created_role_when_training_seeding_fails(store, mock_api):
    mock_api.create_role.return_value = {"id": "role-remote"}
    mock_api.create_training_items.side_effect = SmcrApiError(status=500, message="boom")
    new_role = NewRoleInput(
        person_id="person-1", function_id="smf16", function_type="SMF", start_date=datetime.date(2024, 1, 1),
    )

    with pytest.raises(SmcrApiError):
        await store.assign_role(new_role)

    assert [r.id for r in store.state.roles] == ["role-remote"]
    assert store.state.people[0].training_plan == []

    with pytest.raises(RoleOverlapError):
        await store.assign_role(new_role)
    assert mock_api.create_role.await_count == 1


@pytest.mark.asyncio
async def test_concurrent_assignments_of_the_same_function_conflict(store, mock_api):
    async def slow_create(firm_id, payload):
        await asyncio.sleep(0.01)
        return None

    mock_api.create_role.side_effect = slow_create
    new_role = NewRoleInput(
        person_id="person-1", function_id="smf16", function_type="SMF", start_date=datetime.date(2024, 1, 1),
    )

    results = await asyncio.gather(store.assign_role(new_role), store.assign_role(new_role), return_exceptions=True)

    assert sum(isinstance(r, RoleOverlapError) for r in results) == 1
    assert len(store.state.roles) == 1
    assert mock_api.create_role.await_count == 1


@pytest.mark.asyncio
async def test_remove_role_drops_its_training_and_recomputes_completion(store, mock_api):
    plan = [
        training_item("a", "role-1", status="completed"),
        training_item("b", "role-1"),
        training_item("c", "role-2", status="completed"),
        training_item("d", "role-2"),
        training_item("e", "role-2"),
    ]
    store._replace_state(
        people=[make_person(training_plan=plan)],
        roles=[make_role(role_id="role-1"), make_role(role_id="role-2", function_id="smf1")],
    )

    await store.remove_role("role-1")

    mock_api.delete_role.assert_awaited_once_with("role-1")
    person = store.state.people[0]
    assert [item.id for item in person.training_plan] == ["c", "d", "e"]
    assert person.assessment.training_completion == 33
    assert [r.id for r in store.state.roles] == ["role-2"]


@pytest.mark.asyncio
async def test_update_training_item_status_recomputes_completion(store, mock_api):
    plan = [training_item(f"item-{i}", "role-1") for i in range(8)]
    store._replace_state(people=[make_person(training_plan=plan)])

    await store.update_training_item_status("person-1", "item-0", "completed")

    mock_api.update_training_item.assert_awaited_once_with("person-1", {"id": "item-0", "status": "completed"})
    # 1 of 8 is 12.5, which rounds up
    assert store.state.people[0].assessment.training_completion == 13


# --- People ---

@pytest.mark.asyncio
async def test_add_person_generates_next_employee_id(store, mock_api):
    store._replace_state(people=[make_person(employee_id="EMP001"), make_person("person-2", employee_id="emp007")])

    person = await store.add_person(NewPersonInput(
        name="  Sam Lee ", email="sam@example.com", start_date="2024-02-01", title="  ",
    ))

    assert person.employee_id == "EMP008"
    assert person.name == "Sam Lee"
    assert person.hire_date == "2024-02-01"
    assert person.title is None
    assert person.firm_id == FIRM_ID
    firm_id, payload = mock_api.create_person.await_args.args
    assert firm_id == FIRM_ID
    assert payload["assessment_status"] == "not_required"
    assert len(store.state.people) == 3


@pytest.mark.asyncio
async def test_add_person_adopts_backend_row(store, mock_api):
    mock_api.create_person.return_value = {"id": "server-id", "employeeId": "EMP002", "createdAt": "2024-01-01T00:00:00Z"}

    person = await store.add_person(NewPersonInput(name="Sam Lee", email="sam@example.com"))

    assert person.id == "server-id"
    assert person.name == "Sam Lee"
    assert store.state.people[-1].id == "server-id"


@pytest.mark.asyncio
async def test_update_person_unknown_id_raises(store, mock_api):
    with pytest.raises(PersonNotFoundError):
        await store.update_person("missing", {"name": "Nobody"})
    mock_api.update_person.assert_not_awaited()


@pytest.mark.asyncio
async def test_update_person_merges_assessment_and_protects_identity(store, mock_api):
    updated = await store.update_person("person-1", {
        "id": "hijack", "firm_id": "firm-x", "department": "Risk", "assessment": {"status": "due"},
    })

    assert updated.id == "person-1"
    assert updated.firm_id == FIRM_ID
    assert updated.department == "Risk"
    assert updated.assessment.status == "due"
    person_id, payload = mock_api.update_person.await_args.args
    assert person_id == "person-1"
    assert payload["assessment_status"] == "due"
    assert store.state.people[0].department == "Risk"


@pytest.mark.asyncio
async def test_concurrent_person_updates_keep_both_changes(store, mock_api):
    async def slow_update(person_id, payload):
        await asyncio.sleep(0.01)

    mock_api.update_person.side_effect = slow_update

    await asyncio.gather(
        store.update_person("person-1", {"department": "Risk"}),
        store.update_person("person-1", {"title": "Chief Risk Officer"}),
    )

    person = store.state.people[0]
    assert person.department == "Risk"
    assert person.title == "Chief Risk Officer"
    _, last_payload = mock_api.update_person.await_args.args
    assert last_payload["department"] == "Risk"


@pytest.mark.asyncio
async def test_remove_person_cascades_local_records(store, mock_api):
    store._replace_state(
        people=[make_person(), make_person("person-2", employee_id="EMP002")],
        documents=[DocumentMetadata(id="doc-1", person_id="person-1", name="cv.pdf"),
                   DocumentMetadata(id="doc-2", person_id="person-2", name="cv.pdf")],
        roles=[make_role(), make_role(role_id="role-2", person_id="person-2")],
        breaches=[ConductBreach(id="breach-1", firm_id=FIRM_ID, person_id="person-1", person_name="Alex",
                                rule_id="rule1", rule_name="Rule 1", date_identified="2024-01-01")],
    )

    await store.remove_person("person-1")

    mock_api.delete_person.assert_awaited_once_with("person-1")
    assert [p.id for p in store.state.people] == ["person-2"]
    assert [d.id for d in store.state.documents] == ["doc-2"]
    assert [r.id for r in store.state.roles] == ["role-2"]
    assert store.state.breaches == []


@pytest.mark.asyncio
async def test_attach_documents_keeps_each_successful_upload(store, mock_api):
    mock_api.upload_person_document.side_effect = [
        {"id": "doc-server-1", "personId": "person-1", "name": "cv.pdf", "category": "cv", "size": 3},
        SmcrApiError(status=413, message="Too large"),
    ]
    uploads = [
        DocumentUpload(filename="cv.pdf", content=b"abc", category="cv"),
        DocumentUpload(filename="huge.pdf", content=b"x" * 10),
    ]

    with pytest.raises(SmcrApiError):
        await store.attach_documents("person-1", uploads)

    assert [d.id for d in store.state.documents] == ["doc-server-1"]


# --- Workflows ---

@pytest.mark.asyncio
async def test_launch_workflow_unknown_template(store, mock_api):
    with pytest.raises(WorkflowTemplateNotFoundError):
        await store.launch_workflow(WorkflowLaunchInput(template_id="nope"))
    mock_api.create_workflow.assert_not_awaited()


@pytest.mark.asyncio
async def test_launch_workflow_instantiates_template(store, mock_api):
    workflow = await store.launch_workflow(WorkflowLaunchInput(
        template_id="smf-onboarding", owner_person_id="person-1", custom_name="  Onboard Alex  ",
    ))

    assert workflow.name == "Onboard Alex"
    assert workflow.owner_name == "Alex Morgan"
    assert workflow.status == "not_started"
    assert len(workflow.steps) == 5
    assert [step.draft.kind for step in workflow.steps] == [
        "fp_checklist", "reference_request", "criminal_check", "training_plan", "statement_of_responsibilities",
    ]
    first = workflow.steps[0]
    assert [field.value for field in first.form] == ["", ""]
    assert first.checklist[0].id == "generate-fp-checklist-check-0"
    firm_id, payload = mock_api.create_workflow.await_args.args
    assert firm_id == FIRM_ID
    assert payload["trigger_event"] == "New SMF appointment confirmed"
    assert store.state.workflows == [workflow]


@pytest.mark.asyncio
async def test_step_status_drives_workflow_status(store, mock_api):
    workflow = await store.launch_workflow(WorkflowLaunchInput(template_id="smf-onboarding"))
    step_ids = [step.id for step in workflow.steps]

    updated = await store.update_workflow_step(WorkflowStepUpdateInput(
        workflow_id=workflow.id, step_id=step_ids[0], status="completed", notes="Done",
    ))
    assert updated.status == "in_progress"
    assert updated.steps[0].completed_at is not None
    assert updated.steps[0].notes == "Done"
    _, payload = mock_api.update_workflow.await_args.args
    assert payload["status"] == "in_progress"
    assert len(payload["steps"]) == 5

    for step_id in step_ids[1:]:
        updated = await store.update_workflow_step(WorkflowStepUpdateInput(
            workflow_id=workflow.id, step_id=step_id, status="completed",
        ))
    assert updated.status == "completed"

    for step_id in step_ids:
        updated = await store.update_workflow_step(WorkflowStepUpdateInput(
            workflow_id=workflow.id, step_id=step_id, status="pending",
        ))
    assert updated.status == "not_started"
    assert all(step.completed_at is None for step in updated.steps)


@pytest.mark.asyncio
async def test_field_and_checklist_updates_do_not_send_status(store, mock_api):
    workflow = await store.launch_workflow(WorkflowLaunchInput(template_id="smf-onboarding"))
    step_id = workflow.steps[0].id

    updated = await store.update_workflow_field(WorkflowFieldUpdateInput(
        workflow_id=workflow.id, step_id=step_id, field_id="risk-rating", value="high",
    ))
    assert updated.steps[0].form[0].value == "high"
    _, payload = mock_api.update_workflow.await_args.args
    assert "status" not in payload

    updated = await store.update_workflow_checklist(WorkflowChecklistUpdateInput(
        workflow_id=workflow.id, step_id=step_id, checklist_id="generate-fp-checklist-check-1", completed=True,
    ))
    assert [item.completed for item in updated.steps[0].checklist] == [False, True, False]
    assert mock_api.update_workflow.await_count == 2


@pytest.mark.asyncio
async def test_step_updates_without_target_are_no_ops(store, mock_api):
    workflow = await store.launch_workflow(WorkflowLaunchInput(template_id="smf-onboarding"))
    # "Request regulatory references" has neither a form nor a checklist
    bare_step_id = workflow.steps[1].id

    missing = await store.update_workflow_step(WorkflowStepUpdateInput(
        workflow_id="missing", step_id=bare_step_id, status="completed",
    ))
    unchanged = await store.update_workflow_field(WorkflowFieldUpdateInput(
        workflow_id=workflow.id, step_id=bare_step_id, field_id="notes", value="x",
    ))
    wrong_kind = await store.update_criminal_check(workflow.id, workflow.steps[0].id, lambda d: d)

    assert missing is None
    assert unchanged == workflow
    assert wrong_kind == workflow
    mock_api.update_workflow.assert_not_awaited()


@pytest.mark.asyncio
async def test_concurrent_step_updates_build_on_each_other(store, mock_api):
    workflow = await store.launch_workflow(WorkflowLaunchInput(template_id="smf-onboarding"))
    first_id, second_id = workflow.steps[0].id, workflow.steps[1].id

    async def slow_update(workflow_id, payload):
        await asyncio.sleep(0.01)

    mock_api.update_workflow.side_effect = slow_update

    await asyncio.gather(
        store.update_workflow_step(WorkflowStepUpdateInput(workflow_id=workflow.id, step_id=first_id, status="completed")),
        store.update_workflow_step(WorkflowStepUpdateInput(workflow_id=workflow.id, step_id=second_id, status="completed")),
    )

    steps = store.state.workflows[0].steps
    assert [s.status for s in steps[:2]] == ["completed", "completed"]
    assert mock_api.update_workflow.await_count == 2
    _, last_payload = mock_api.update_workflow.await_args.args
    assert [s["status"] for s in last_payload["steps"][:2]] == ["completed", "completed"]
    assert last_payload["status"] == "in_progress"


@pytest.mark.asyncio
async def test_typed_draft_update(store, mock_api):
    workflow = await store.launch_workflow(WorkflowLaunchInput(template_id="smf-onboarding"))
    step_id = workflow.steps[2].id

    updated = await store.update_criminal_check(
        workflow.id, step_id, lambda draft: draft.model_copy(update={"status": "requested", "reference_number": "DBS-1"})
    )

    draft = updated.steps[2].draft
    assert draft.kind == "criminal_check"
    assert draft.status == "requested"
    assert draft.reference_number == "DBS-1"
    mock_api.update_workflow.assert_awaited_once()


@pytest.mark.asyncio
async def test_attach_workflow_evidence_classifies_file(store, mock_api):
    workflow = await store.launch_workflow(WorkflowLaunchInput(template_id="smf-onboarding"))

    document = await store.attach_workflow_evidence(
        workflow.id, workflow.steps[2].id, DocumentUpload(filename="Alex_DBS_2024.pdf", content=b"pdf")
    )

    assert document.summary == "Detected DBS certificate"
    assert document.status == "reviewed"
    assert document.size == 3
    _, upload, step_id = mock_api.upload_workflow_document.await_args.args
    assert step_id == workflow.steps[2].id
    assert mock_api.upload_workflow_document.await_args.kwargs == {
        "summary": "Detected DBS certificate", "status": "reviewed",
    }
    assert store.state.workflow_documents == [document]


@pytest.mark.asyncio
async def test_attach_workflow_evidence_unknown_workflow(store, mock_api):
    with pytest.raises(WorkflowNotFoundError) as exc_info:
        await store.attach_workflow_evidence("missing", "step", DocumentUpload(filename="a.pdf", content=b""))
    assert str(exc_info.value) == "Workflow not found"
    mock_api.upload_workflow_document.assert_not_awaited()


# --- Assessments ---

@pytest.mark.asyncio
async def test_start_assessment_seeds_responses_and_marks_person_due(store, mock_api):
    record = await store.start_assessment(NewAssessmentInput(
        person_id="person-1", assessment_date="2024-03-01", next_due_date="2025-03-01",
    ))

    questions = get_all_fitness_questions()
    assert len(record.responses) == len(questions)
    for question, response in zip(questions, record.responses):
        assert response.question_id == question.id
        assert response.value == ("" if question.type == "text" else None)
    person = store.state.people[0]
    assert person.assessment.status == "due"
    assert person.assessment.next_assessment == "2025-03-01"
    mock_api.update_person.assert_awaited_once()


@pytest.mark.asyncio
async def test_start_assessment_unknown_person(store, mock_api):
    with pytest.raises(PersonNotFoundError) as exc_info:
        await store.start_assessment(NewAssessmentInput(person_id="ghost"))
    assert str(exc_info.value) == "Person with id ghost not found"
    mock_api.create_assessment.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("determination, expected", [
    ("Fit and Proper", "current"),
    ("Conditional", "due"),
    ("Not Fit and Proper", "overdue"),
])
async def test_completed_assessment_propagates_to_person(store, mock_api, determination, expected):
    record = await store.start_assessment(NewAssessmentInput(person_id="person-1"))

    updated = await store.update_assessment_status(AssessmentStatusUpdate(
        assessment_id=record.id, status="completed", overall_determination=determination,
    ))

    assert updated.status == "completed"
    assert store.state.people[0].assessment.status == expected


@pytest.mark.asyncio
async def test_in_review_assessment_marks_person_due(store, mock_api):
    store._replace_state(people=[make_person(assessment={"status": "current"})])
    record = await store.start_assessment(NewAssessmentInput(person_id="person-1"))
    store._replace_state(people=[make_person(assessment={"status": "current"})])

    await store.update_assessment_status(AssessmentStatusUpdate(assessment_id=record.id, status="in_review"))

    assert store.state.people[0].assessment.status == "due"


# --- Breaches ---

@pytest.mark.asyncio
async def test_add_breach_requires_active_firm(store, mock_api):
    store.active_firm_id = None
    with pytest.raises(FirmNotSelectedError) as exc_info:
        await store.add_breach(NewBreachInput(
            person_id="person-1", person_name="Alex", rule_id="rule1", rule_name="Rule 1", date_identified="2024-01-01",
        ))
    assert str(exc_info.value) == "No active firm selected"


@pytest.mark.asyncio
async def test_add_breach_seeds_timeline_and_appends(store, mock_api):
    breach = await store.add_breach(NewBreachInput(
        person_id="person-1", person_name="Alex", rule_id="rule1", rule_name="Rule 1",
        date_identified="2024-01-01", severity="serious",
    ))

    assert breach.status == "open"
    assert [entry.action for entry in breach.timeline] == ["Breach Reported"]

    entry = await store.add_breach_timeline_entry(breach.id, NewTimelineEntryInput(action="Investigation opened"))

    mock_api.add_breach_timeline_entry.assert_awaited_once()
    stored = store.state.breaches[0]
    assert [e.action for e in stored.timeline] == ["Breach Reported", "Investigation opened"]
    assert stored.timeline[-1].id == entry.id


@pytest.mark.asyncio
async def test_update_breach_refuses_timeline_rewrite(store, mock_api):
    with pytest.raises(ImmutableTimelineError):
        await store.update_breach("breach-1", {"timeline": []})
    mock_api.update_breach.assert_not_awaited()


# --- Firms and loading ---

@pytest.mark.asyncio
async def test_load_firms_selects_first_firm_and_loads_it(mock_api):
    mock_api.get_firms.return_value = [{"id": "f-1", "name": "One"}, {"id": "f-2", "name": "Two"}]
    mock_api.get_people.return_value = []
    store = SmcrDataStore(mock_api)

    firms = await store.load_firms()

    assert [f.id for f in firms] == ["f-1", "f-2"]
    assert store.active_firm_id == "f-1"
    assert store.is_ready is True
    mock_api.get_people.assert_awaited_once_with("f-1")


@pytest.mark.asyncio
async def test_load_firm_data_tolerates_per_person_failures(store, mock_api):
    mock_api.get_people.return_value = [
        {"id": "p1", "firmId": FIRM_ID, "employeeId": "EMP001", "name": "One", "trainingCompletion": 90},
        {"id": "p2", "firmId": FIRM_ID, "employeeId": "EMP002", "name": "Two"},
    ]
    mock_api.get_roles.return_value = [{"id": "r1", "personId": "p1", "functionId": "smf1", "startDate": "2024-01-01"}]
    mock_api.get_workflows.return_value = [{"id": "w1", "templateId": "smf-onboarding", "steps": "[]"}]
    mock_api.get_assessments.return_value = []
    mock_api.get_breaches.return_value = []
    mock_api.get_group_entities.return_value = [{"id": "g1", "name": "HoldCo", "type": "holding"}]

    async def documents_for(person_id):
        if person_id == "p2":
            raise SmcrApiError(status=500, message="down")
        return [{"id": "d1", "personId": person_id, "name": "cv.pdf"}]

    async def training_for(person_id):
        if person_id == "p1":
            return [{"id": "t1", "moduleId": "m", "title": "M", "roleContext": "r1", "status": "completed"}]
        return []

    mock_api.get_person_documents.side_effect = documents_for
    mock_api.get_training_items.side_effect = training_for
    mock_api.get_workflow_documents.return_value = [{"id": "wd1", "workflowId": "w1", "stepId": "s1", "name": "x.pdf"}]

    await store.load_firm_data()

    assert store.is_ready is True
    assert store.load_error is None
    people = {p.id: p for p in store.state.people}
    assert set(people) == {"p1", "p2"}
    assert people["p1"].assessment.training_completion == 100
    assert [d.id for d in store.state.documents] == ["d1"]
    assert store.state.roles[0].function_id == "smf1"
    assert store.state.workflows[0].name == "SMF Onboarding"
    assert [d.id for d in store.state.workflow_documents] == ["wd1"]
    assert store.state.group_entities[0].type == "holding"


@pytest.mark.asyncio
async def test_load_firm_data_failure_records_error(store, mock_api):
    mock_api.get_people.side_effect = SmcrApiError(status=503, message="Service unavailable")
    before = store.state

    await store.load_firm_data()

    assert store.is_ready is True
    assert "Service unavailable" in store.load_error
    assert store.state is before


@pytest.mark.asyncio
async def test_load_firm_data_discards_stale_results(store, mock_api):
    async def switch_firm_mid_load(firm_id):
        # Another load starts while this one is in flight
        store._load_generation += 1
        return [{"id": "p-stale", "firmId": firm_id, "name": "Stale"}]

    mock_api.get_people.side_effect = switch_firm_mid_load
    before = store.state

    await store.load_firm_data()

    assert store.state is before


@pytest.mark.asyncio
async def test_add_firm_becomes_active_with_empty_workspace(store, mock_api):
    mock_api.create_firm.return_value = {"id": "firm-new", "name": "New Firm"}

    firm = await store.add_firm("  New Firm ")

    mock_api.create_firm.assert_awaited_once_with("New Firm")
    assert firm.id == "firm-new"
    assert store.active_firm_id == "firm-new"
    assert store.state.people == []
    assert [f.id for f in store.firms] == [FIRM_ID, "firm-new"]


# --- Stale verifications ---

def test_find_stale_verifications(store):
    now = datetime.datetime(2024, 6, 1, tzinfo=datetime.UTC)

    def verified(days_ago=None, raw=None):
        last_checked = raw if raw is not None else (now - datetime.timedelta(days=days_ago)).isoformat()
        return FcaVerification(status="Approved", last_checked=last_checked)

    store._replace_state(people=[
        make_person("no-irn"),
        make_person("never-checked", irn="ABC1"),
        make_person("old", irn="ABC2", fca_verification=verified(31)),
        make_person("boundary", irn="ABC3", fca_verification=verified(30)),
        make_person("fresh", irn="ABC4", fca_verification=verified(10)),
        make_person("future", irn="ABC5", fca_verification=verified(-1)),
        make_person("garbled", irn="ABC6", fca_verification=verified(raw="")),
    ])

    stale = store.find_stale_verifications(now)

    assert [p.id for p in stale] == ["never-checked", "old", "boundary", "garbled"]


def test_find_stale_verifications_honours_threshold_setting(store):
    now = datetime.datetime(2024, 6, 1, tzinfo=datetime.UTC)
    checked = (now - datetime.timedelta(days=10)).isoformat()
    store._replace_state(people=[
        make_person("p", irn="ABC", fca_verification=FcaVerification(status="Approved", last_checked=checked)),
    ])

    store.update_settings(verification_stale_threshold_days=7)

    assert [p.id for p in store.find_stale_verifications(now)] == ["p"]


def test_stale_threshold_defaults_to_configured_days(mock_api, monkeypatch):
    monkeypatch.setattr(settings, "VERIFICATION_STALE_THRESHOLD_DAYS", 7)
    store = SmcrDataStore(mock_api)
    store.active_firm_id = FIRM_ID
    now = datetime.datetime(2024, 6, 1, tzinfo=datetime.UTC)
    checked = (now - datetime.timedelta(days=10)).isoformat()
    store._replace_state(people=[
        make_person("p", irn="ABC", fca_verification=FcaVerification(status="Approved", last_checked=checked)),
    ])

    assert store.state.settings.verification_stale_threshold_days == 7
    assert [p.id for p in store.find_stale_verifications(now)] == ["p"]
