"""
Reference data for the Senior Managers & Certification Regime.

Senior management functions, certification functions, PSD roles, prescribed
responsibilities and conduct rules. Role assignments, F&P checklists and breach
records all join against these tables by id.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class SeniorManagementFunction(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    smf_number: str
    title: str
    description: str
    category: Literal["universal", "payment_specific", "investment_specific"]
    prescribed_responsibilities: List[int] = Field(default_factory=list)


class CertificationFunction(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    cf_number: str
    title: str
    description: str
    applies_to: List[str] = Field(default_factory=list)
    annual_assessment: bool = True


class PsdFunction(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    psd_number: str
    title: str
    description: str
    regulatory_reference: Optional[str] = None


class PrescribedResponsibility(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    pr_number: str
    description: str
    typical_holder: str


class ConductRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    rule_number: str
    text: str
    type: Literal["individual", "senior_manager"]


def _smf(id, number, title, description, category, prs):
    return SeniorManagementFunction(
        id=id, smf_number=number, title=title, description=description,
        category=category, prescribed_responsibilities=prs,
    )


ALL_SMFS: List[SeniorManagementFunction] = [
    _smf("smf1", "SMF1", "Chief Executive",
         "The most senior executive responsible for the conduct of the whole of the firm's business",
         "universal", [1, 2, 3, 4, 5, 6]),
    _smf("smf3", "SMF3", "Executive Director",
         "A director of the firm who is an employee of the firm or of a member of the firm's group",
         "universal", [1, 2, 3, 4]),
    _smf("smf16", "SMF16", "Compliance Oversight",
         "The senior manager who has responsibility for the firm's compliance function",
         "universal", [15, 16, 17]),
    _smf("smf17", "SMF17", "Money Laundering Reporting Officer",
         "The person appointed as the firm's money laundering reporting officer (MLRO)",
         "universal", [18]),
    _smf("smf27", "SMF27", "Partner (Limited Scope)",
         "A partner in a limited scope CASS firm who has executive responsibility",
         "universal", [1, 2]),
    _smf("smf4", "SMF4", "Chief Risk Officer",
         "The senior manager who has responsibility for risk management",
         "payment_specific", [9, 10, 11]),
    _smf("smf24", "SMF24", "Chief Operations",
         "The senior manager responsible for the firm's operations",
         "investment_specific", [12, 13, 14]),
    _smf("smf9", "SMF9", "Chair", "Chair of the governing body", "investment_specific", [7, 8]),
    _smf("smf10", "SMF10", "Chair of Risk Committee", "Chair of the risk committee", "investment_specific", [9, 10]),
]

CERTIFICATION_FUNCTIONS: List[CertificationFunction] = [
    CertificationFunction(
        id="cf30", cf_number="CF30", title="Customer-Facing (non-investment)",
        description="A function involving the exercise of customer-facing activities",
        applies_to=["Consumer credit", "Payment services"],
    ),
    CertificationFunction(
        id="cf29", cf_number="CF29", title="Limited Scope Function",
        description="Functions within limited scope firms",
        applies_to=["Benchmark activities", "Limited permissions"],
    ),
    CertificationFunction(
        id="cf28", cf_number="CF28", title="Systems & Controls",
        description="Responsibility for systems and controls in key areas",
        applies_to=["Material risk-takers"],
    ),
]

PSD_FUNCTIONS: List[PsdFunction] = [
    PsdFunction(id="psd-director", psd_number="PSD-DIR", title="Director (Payment Services)",
                description="Director responsible for the overall management and strategic direction of payment services activities",
                regulatory_reference="PSR Reg 6"),
    PsdFunction(id="psd-qualified", psd_number="PSD-QP", title="Qualified Person",
                description="Individual with appropriate qualifications and experience to manage payment services operations",
                regulatory_reference="PSR Reg 6(6)"),
    PsdFunction(id="psd-compliance", psd_number="PSD-CO", title="Compliance Officer (PSD)",
                description="Individual responsible for compliance with payment services regulations and AML requirements",
                regulatory_reference="PSR/EMR"),
    PsdFunction(id="psd-safeguarding", psd_number="PSD-SG", title="Safeguarding Officer",
                description="Individual responsible for ensuring proper safeguarding of customer funds",
                regulatory_reference="PSR Reg 19-23 / EMR Reg 20-22"),
    PsdFunction(id="psd-operational", psd_number="PSD-OP", title="Operational Manager",
                description="Individual responsible for the operational aspects of payment services"),
    PsdFunction(id="psd-it-security", psd_number="PSD-IT", title="IT Security Officer",
                description="Individual responsible for IT security and operational resilience under PSD2",
                regulatory_reference="PSD2 RTS on SCA/CSC"),
]

PRESCRIBED_RESPONSIBILITIES: List[PrescribedResponsibility] = [
    PrescribedResponsibility(id="pr1", pr_number="PR1",
                             description="Performance of obligations under SM&CR", typical_holder="SMF1 or SMF3"),
    PrescribedResponsibility(id="pr2", pr_number="PR2",
                             description="Performance of the obligations of the firm under the regulatory system",
                             typical_holder="SMF1"),
    PrescribedResponsibility(id="pr3", pr_number="PR3",
                             description="Performance of the obligations of the firm under the financial crime rules",
                             typical_holder="SMF1 or SMF17"),
    PrescribedResponsibility(id="pr15", pr_number="PR15",
                             description="Compliance with rules and guidance", typical_holder="SMF16"),
    PrescribedResponsibility(id="pr16", pr_number="PR16",
                             description="Performance of the compliance function", typical_holder="SMF16"),
    PrescribedResponsibility(id="pr17", pr_number="PR17",
                             description="Performance of the operational risk function", typical_holder="SMF4 or SMF16"),
    PrescribedResponsibility(id="pr18", pr_number="PR18",
                             description="Financial crime prevention", typical_holder="SMF17"),
]

INDIVIDUAL_CONDUCT_RULES: List[ConductRule] = [
    ConductRule(id="rule1", rule_number="Rule1", text="You must act with integrity", type="individual"),
    ConductRule(id="rule2", rule_number="Rule2", text="You must act with due skill, care and diligence", type="individual"),
    ConductRule(id="rule3", rule_number="Rule3",
                text="You must be open and cooperative with the FCA, the PRA and other regulators", type="individual"),
    ConductRule(id="rule4", rule_number="Rule4",
                text="You must pay due regard to the interests of customers and treat them fairly", type="individual"),
    ConductRule(id="rule5", rule_number="Rule5", text="You must observe proper standards of market conduct", type="individual"),
]

SENIOR_MANAGER_CONDUCT_RULES: List[ConductRule] = [
    ConductRule(id="sc1", rule_number="SC1", type="senior_manager",
                text="You must take reasonable steps to ensure that the business of the firm for which you are "
                     "responsible is controlled effectively"),
    ConductRule(id="sc2", rule_number="SC2", type="senior_manager",
                text="You must take reasonable steps to ensure that the business of the firm for which you are "
                     "responsible complies with the relevant requirements and standards of the regulatory system"),
    ConductRule(id="sc3", rule_number="SC3", type="senior_manager",
                text="You must take reasonable steps to ensure that any delegation of your responsibilities is to an "
                     "appropriate person and that you oversee the discharge of the delegated responsibility effectively"),
    ConductRule(id="sc4", rule_number="SC4", type="senior_manager",
                text="You must disclose appropriately any information of which the FCA or PRA would reasonably "
                     "expect notice"),
]

ALL_CONDUCT_RULES: List[ConductRule] = INDIVIDUAL_CONDUCT_RULES + SENIOR_MANAGER_CONDUCT_RULES


def get_conduct_rule(rule_id: str) -> Optional[ConductRule]:
    return next((rule for rule in ALL_CONDUCT_RULES if rule.id == rule_id), None)


def function_label(function_type: str, function_id: str) -> str:
    """Display label for a role assignment, e.g. ``SMF1 - Chief Executive``.

    Unknown ids come back unchanged so a role can still be saved against a
    function that has since been dropped from the catalog.
    """
    if function_type == "SMF":
        found = next((smf for smf in ALL_SMFS if smf.id == function_id), None)
        if found:
            return f"{found.smf_number} - {found.title}"
    else:
        found = next((cf for cf in CERTIFICATION_FUNCTIONS if cf.id == function_id), None)
        if found:
            return f"{found.cf_number} - {found.title}"
    return function_id
