"""
Fitness and propriety questions asked in every F&P assessment.

Grouped the way FIT 2 of the FCA handbook groups its criteria.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

FitnessQuestionType = Literal["boolean", "text"]


class FitnessQuestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    type: FitnessQuestionType = "boolean"
    guidance: Optional[str] = None


class FitnessQuestionGroup(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    handbook_reference: str
    questions: List[FitnessQuestion] = Field(default_factory=list)


FITNESS_QUESTION_GROUPS: List[FitnessQuestionGroup] = [
    FitnessQuestionGroup(
        id="honesty-integrity",
        title="Honesty, integrity and reputation",
        handbook_reference="FIT 2.1",
        questions=[
            FitnessQuestion(id="hi-criminal-convictions",
                            text="Has the individual been convicted of any criminal offence, including spent convictions where disclosable?"),
            FitnessQuestion(id="hi-regulatory-investigations",
                            text="Has the individual been the subject of any regulatory investigation or disciplinary proceedings?"),
            FitnessQuestion(id="hi-dismissals",
                            text="Has the individual been dismissed or asked to resign from any position of trust?"),
            FitnessQuestion(id="hi-references-clean",
                            text="Do regulatory references cover the last six years without adverse findings?"),
            FitnessQuestion(id="hi-disclosure-notes", type="text",
                            text="Summarise any matters disclosed and how they were assessed.",
                            guidance="Record the source of each disclosure and the assessor's conclusion."),
        ],
    ),
    FitnessQuestionGroup(
        id="competence-capability",
        title="Competence and capability",
        handbook_reference="FIT 2.2",
        questions=[
            FitnessQuestion(id="cc-qualifications",
                            text="Does the individual hold the qualifications required for the role?"),
            FitnessQuestion(id="cc-experience",
                            text="Does the individual have relevant experience for the responsibilities allocated?"),
            FitnessQuestion(id="cc-training-current",
                            text="Is the individual's mandatory training up to date?"),
            FitnessQuestion(id="cc-time-commitment",
                            text="Can the individual commit sufficient time to the role alongside other commitments?"),
            FitnessQuestion(id="cc-development-needs", type="text",
                            text="Describe any development needs identified during the review."),
        ],
    ),
    FitnessQuestionGroup(
        id="financial-soundness",
        title="Financial soundness",
        handbook_reference="FIT 2.3",
        questions=[
            FitnessQuestion(id="fs-judgment-debts",
                            text="Is the individual subject to any unsatisfied judgment debts or CCJs?"),
            FitnessQuestion(id="fs-bankruptcy",
                            text="Has the individual been declared bankrupt or entered an IVA?"),
            FitnessQuestion(id="fs-credit-check-notes", type="text",
                            text="Record the outcome of the credit check and any follow-up."),
        ],
    ),
]


def get_all_fitness_questions() -> List[FitnessQuestion]:
    return [question for group in FITNESS_QUESTION_GROUPS for question in group.questions]
