from smcr_service.app.catalogs.core_functions import (
    ALL_CONDUCT_RULES,
    ALL_SMFS,
    PRESCRIBED_RESPONSIBILITIES,
    function_label,
    get_conduct_rule,
)
from smcr_service.app.catalogs.fitness_framework import FITNESS_QUESTION_GROUPS, get_all_fitness_questions
from smcr_service.app.catalogs.workflow_templates import WORKFLOW_TEMPLATES, get_workflow_template


def test_catalog_ids_are_unique():
    for items in (ALL_SMFS, PRESCRIBED_RESPONSIBILITIES, ALL_CONDUCT_RULES, WORKFLOW_TEMPLATES,
                  get_all_fitness_questions()):
        ids = [item.id for item in items]
        assert len(ids) == len(set(ids))


def test_workflow_templates():
    assert [t.id for t in WORKFLOW_TEMPLATES] == ["smf-onboarding", "annual-review", "breach-management"]
    assert get_workflow_template("breach-management").category == "breach_management"
    assert get_workflow_template("missing") is None


def test_function_label():
    assert function_label("SMF", "smf1") == "SMF1 - Chief Executive"
    assert function_label("CF", "cf28") == "CF28 - Systems & Controls"
    assert function_label("SMF", "smf999") == "smf999"


def test_conduct_rule_lookup():
    assert get_conduct_rule("sc4").rule_number == "SC4"
    assert get_conduct_rule("nope") is None


def test_fitness_questions_flatten_in_group_order():
    questions = get_all_fitness_questions()
    assert len(questions) == sum(len(group.questions) for group in FITNESS_QUESTION_GROUPS)
    assert questions[0].id == FITNESS_QUESTION_GROUPS[0].questions[0].id
    assert any(q.type == "text" for q in questions)
