"""
Static workflow templates that workflow instances are launched from.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from smcr_service.app.models.workflow import WorkflowFieldOption, WorkflowFieldType

WorkflowCategory = Literal["onboarding", "annual_review", "breach_management"]


class WorkflowFieldDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    type: WorkflowFieldType
    required: bool = False
    helper_text: Optional[str] = None
    options: Optional[List[WorkflowFieldOption]] = None


class WorkflowTemplateStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    expected_evidence: Optional[List[str]] = None
    recommended_owner: Optional[str] = None
    checklist: Optional[List[str]] = None
    form: Optional[List[WorkflowFieldDefinition]] = None


class WorkflowTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    summary: str
    trigger: str
    category: WorkflowCategory
    duration_days: int
    steps: List[WorkflowTemplateStep] = Field(default_factory=list)
    success_criteria: List[str] = Field(default_factory=list)


def _options(*pairs) -> List[WorkflowFieldOption]:
    return [WorkflowFieldOption(value=value, label=label) for value, label in pairs]


WORKFLOW_TEMPLATES: List[WorkflowTemplate] = [
    WorkflowTemplate(
        id="smf-onboarding",
        title="SMF Onboarding",
        summary="Complete onboarding process for Senior Management Function appointments.",
        trigger="New SMF appointment confirmed",
        category="onboarding",
        duration_days=90,
        steps=[
            WorkflowTemplateStep(
                id="generate-fp-checklist",
                title="Generate F&P checklist",
                description="Create an individual-specific fitness & propriety checklist aligned to role requirements.",
                expected_evidence=["F&P checklist document"],
                recommended_owner="Compliance",
                checklist=[
                    "Role profile mapped to SMF/CF responsibilities",
                    "Prescribed responsibilities allocated and documented",
                    "Dependencies on other control functions captured",
                ],
                form=[
                    WorkflowFieldDefinition(
                        id="risk-rating",
                        label="Initial risk rating",
                        type="select",
                        required=True,
                        options=_options(("low", "Low"), ("medium", "Medium"), ("high", "High"), ("critical", "Critical")),
                    ),
                    WorkflowFieldDefinition(
                        id="notes",
                        label="Key considerations",
                        type="textarea",
                        helper_text="Capture any foreseeable concerns or additional evidence needed.",
                    ),
                ],
            ),
            WorkflowTemplateStep(
                id="request-reg-references",
                title="Request regulatory references",
                description="Issue FCA-aligned regulatory reference request to previous employers covering the last 6 years.",
                expected_evidence=["Reference request", "Reference responses"],
                recommended_owner="HR",
            ),
            WorkflowTemplateStep(
                id="schedule-criminal-check",
                title="Schedule criminal record check",
                description="Book a background check (DBS/Disclosure Scotland) covering unspent and relevant spent convictions.",
                expected_evidence=["Completed criminal record certificate"],
                recommended_owner="HR",
            ),
            WorkflowTemplateStep(
                id="create-training-plan",
                title="Create training plan",
                description="Build an initial competence plan covering prescribed responsibilities and role-specific CPD.",
                expected_evidence=["Training plan document"],
                recommended_owner="Compliance Training",
            ),
            WorkflowTemplateStep(
                id="draft-sor",
                title="Draft Statement of Responsibilities",
                description="Produce the Statement of Responsibilities and ensure prescribed responsibilities are allocated.",
                expected_evidence=["Statement of Responsibilities"],
                recommended_owner="SMF Sponsor",
                checklist=[
                    "Responsibilities aligned to FCA prescribed list",
                    "Duplications reviewed with Compliance",
                    "Draft shared with SMF holder",
                ],
            ),
        ],
        success_criteria=[
            "Statement of Responsibilities approved",
            "Background checks cleared",
            "Training plan accepted by SMF holder",
        ],
    ),
    WorkflowTemplate(
        id="annual-review",
        title="Annual F&P Review",
        summary="Conduct annual certification or senior manager fitness & propriety review.",
        trigger="Assessment anniversary approaching (-30 days)",
        category="annual_review",
        duration_days=30,
        steps=[
            WorkflowTemplateStep(
                id="send-attestations",
                title="Send attestation forms",
                description="Issue F&P and Conduct Rule attestation forms to the individual and their line manager.",
                expected_evidence=["Signed attestations"],
                recommended_owner="Compliance",
                checklist=[
                    "Individual attestation issued",
                    "Line manager attestation issued",
                    "Reminder scheduled for outstanding responses",
                ],
            ),
            WorkflowTemplateStep(
                id="refresh-background-checks",
                title="Refresh background checks",
                description="Refresh credit, criminal, and regulatory reference checks based on risk appetite.",
                expected_evidence=["Updated screening checks"],
                recommended_owner="HR",
                form=[
                    WorkflowFieldDefinition(
                        id="checks-completed",
                        label="Checks completed",
                        type="textarea",
                        helper_text="List checks refreshed and relevant dates.",
                    ),
                    WorkflowFieldDefinition(
                        id="issues-identified",
                        label="Issues identified",
                        type="boolean",
                        required=True,
                    ),
                ],
            ),
            WorkflowTemplateStep(
                id="collate-performance-data",
                title="Collate performance data",
                description="Gather appraisal outputs, conduct records, and CPD logs relevant to the assessment.",
                expected_evidence=["Performance appraisal", "CPD log"],
                recommended_owner="Line Manager",
            ),
            WorkflowTemplateStep(
                id="generate-determination",
                title="Generate F&P determination",
                description="Document assessment outcome including any conditions or follow-up actions required.",
                expected_evidence=["F&P determination record"],
                recommended_owner="Certification Officer",
                form=[
                    WorkflowFieldDefinition(
                        id="determination",
                        label="Determination",
                        type="select",
                        required=True,
                        options=_options(("fit", "Fit and Proper"), ("conditional", "Conditional"), ("not_fit", "Not Fit")),
                    ),
                    WorkflowFieldDefinition(
                        id="conditions",
                        label="Conditions / follow-up",
                        type="textarea",
                    ),
                ],
            ),
            WorkflowTemplateStep(
                id="update-reg-systems",
                title="Update regulatory systems",
                description="Update FCA directory and internal registers; prepare annual SMCR return entries.",
                expected_evidence=["Regulatory update confirmation"],
                recommended_owner="Compliance",
            ),
        ],
        success_criteria=[
            "Attestations signed and stored",
            "Determination documented and approved",
            "Registers updated and evidence archived",
        ],
    ),
    WorkflowTemplate(
        id="breach-management",
        title="Conduct Breach Management",
        summary="Coordinate response to a logged conduct rule breach.",
        trigger="New conduct breach logged",
        category="breach_management",
        duration_days=14,
        steps=[
            WorkflowTemplateStep(
                id="assess-severity",
                title="Assess severity",
                description="Determine severity category and whether SMF notification is required.",
                expected_evidence=["Severity assessment form"],
                recommended_owner="Compliance Lead",
                form=[
                    WorkflowFieldDefinition(
                        id="severity",
                        label="Severity",
                        type="select",
                        required=True,
                        options=_options(("minor", "Minor"), ("serious", "Serious"), ("severe", "Severe")),
                    ),
                    WorkflowFieldDefinition(
                        id="summary",
                        label="Summary of breach",
                        type="textarea",
                        required=True,
                    ),
                ],
            ),
            WorkflowTemplateStep(
                id="notify-smf1",
                title="Notify SMF1 (if serious)",
                description="Escalate to SMF1 and relevant board committees where serious or severe.",
                expected_evidence=["Notification record"],
                recommended_owner="Compliance",
            ),
            WorkflowTemplateStep(
                id="consider-fca-notification",
                title="Consider FCA notification",
                description="Assess need for immediate FCA notification or inclusion in next regulatory return.",
                expected_evidence=["Decision log"],
                recommended_owner="Compliance & Legal",
            ),
            WorkflowTemplateStep(
                id="document-remediation",
                title="Document remedial actions",
                description="Capture agreed remedial actions, owners, and deadlines.",
                expected_evidence=["Remediation plan"],
                recommended_owner="Line Manager",
                form=[
                    WorkflowFieldDefinition(
                        id="actions",
                        label="Actions agreed",
                        type="textarea",
                        required=True,
                    ),
                    WorkflowFieldDefinition(
                        id="target-date",
                        label="Target completion date",
                        type="date",
                    ),
                ],
            ),
            WorkflowTemplateStep(
                id="update-individual-record",
                title="Update individual record",
                description="Record breach outcome within the individual's SMCR record and notify certification team.",
                expected_evidence=["Updated individual record"],
                recommended_owner="Certification Team",
            ),
        ],
        success_criteria=[
            "Severity and notification decisions documented",
            "Remediation actions assigned and tracked",
            "Individual record updated with final outcome",
        ],
    ),
]


def get_workflow_template(template_id: str) -> Optional[WorkflowTemplate]:
    return next((template for template in WORKFLOW_TEMPLATES if template.id == template_id), None)
