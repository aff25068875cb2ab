"""
Training modules required when a person takes on a regulated role.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class TrainingModuleDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    required: bool = True
    recommended_due_within_days: Optional[int] = None


# Every senior manager covers these regardless of function
SENIOR_MANAGER_CORE_MODULES: List[TrainingModuleDefinition] = [
    TrainingModuleDefinition(id="smcr-duty-of-responsibility", title="SM&CR Duty of Responsibility",
                             recommended_due_within_days=30),
    TrainingModuleDefinition(id="senior-conduct-rules", title="Senior Manager Conduct Rules (SC1-SC4)",
                             recommended_due_within_days=30),
]

CERTIFICATION_CORE_MODULES: List[TrainingModuleDefinition] = [
    TrainingModuleDefinition(id="individual-conduct-rules", title="Individual Conduct Rules (Rules 1-5)",
                             recommended_due_within_days=60),
]

FUNCTION_SPECIFIC_MODULES: Dict[str, List[TrainingModuleDefinition]] = {
    "smf1": [
        TrainingModuleDefinition(id="board-effectiveness", title="Board Oversight and Effectiveness",
                                 recommended_due_within_days=90),
        TrainingModuleDefinition(id="consumer-duty-governance", title="Consumer Duty Governance",
                                 recommended_due_within_days=90),
    ],
    "smf3": [
        TrainingModuleDefinition(id="directors-duties", title="Directors' Duties and Accountability",
                                 recommended_due_within_days=90),
    ],
    "smf4": [
        TrainingModuleDefinition(id="risk-appetite-framework", title="Risk Appetite and ICARA Oversight",
                                 recommended_due_within_days=60),
        TrainingModuleDefinition(id="operational-resilience", title="Operational Resilience",
                                 recommended_due_within_days=90),
    ],
    "smf16": [
        TrainingModuleDefinition(id="compliance-monitoring", title="Compliance Monitoring Programme Design",
                                 recommended_due_within_days=60),
        TrainingModuleDefinition(id="regulatory-change", title="Regulatory Change Management", required=False),
    ],
    "smf17": [
        TrainingModuleDefinition(id="aml-ctf-advanced", title="Advanced AML/CTF for MLROs",
                                 recommended_due_within_days=30),
        TrainingModuleDefinition(id="sar-reporting", title="Suspicious Activity Reporting",
                                 recommended_due_within_days=30),
        TrainingModuleDefinition(id="sanctions-screening", title="Sanctions Screening", recommended_due_within_days=60),
    ],
    "smf24": [
        TrainingModuleDefinition(id="cass-oversight", title="CASS and Client Money Oversight",
                                 recommended_due_within_days=60),
    ],
    "smf9": [
        TrainingModuleDefinition(id="board-effectiveness", title="Board Oversight and Effectiveness",
                                 recommended_due_within_days=90),
    ],
    "smf10": [
        TrainingModuleDefinition(id="risk-appetite-framework", title="Risk Appetite and ICARA Oversight",
                                 recommended_due_within_days=60),
    ],
    "cf30": [
        TrainingModuleDefinition(id="treating-customers-fairly", title="Treating Customers Fairly",
                                 recommended_due_within_days=30),
        TrainingModuleDefinition(id="vulnerable-customers", title="Identifying Vulnerable Customers",
                                 recommended_due_within_days=60),
    ],
    "cf28": [
        TrainingModuleDefinition(id="systems-controls-competence", title="Systems & Controls Competence Assessment",
                                 recommended_due_within_days=90),
    ],
}
