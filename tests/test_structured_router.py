import json

import pytest

from conftest import FakeLLM, failing_llm, run
from core.domain import StructuredQueryFailure
from services.structured_router import (
    EMPTY_COMPLETION_ANSWER,
    MISSING_FACT_ANSWER,
    SYSTEM_PROMPT,
    FactCategory,
    StructuredDataRouter,
)

FACTS = {
    "documentType": "Construction contract",
    "parties": ["Acme Builders", "City of Springfield"],
    "financialTerms": {"contractSum": "$1,200,000"},
}


@pytest.mark.parametrize(
    "question, category",
    [
        ("What type of document is this?", FactCategory.DOCUMENT_TYPE),
        ("What kind of contract is it", FactCategory.DOCUMENT_TYPE),
        ("Who are the parties?", FactCategory.PARTIES),
        ("Who signed the agreement?", FactCategory.PARTIES),
        ("What's the total amount?", FactCategory.FINANCIAL_TERMS),
        ("How much is the contract worth?", FactCategory.FINANCIAL_TERMS),
        ("When is the effective date?", FactCategory.DATES),
        ("What are the risks?", FactCategory.RISKS),
        ("What compliance risks exist?", FactCategory.RISKS),
        ("What are the key obligations?", FactCategory.OBLIGATIONS),
        ("How can the contract be terminated?", FactCategory.TERMINATION),
        ("Which clauses pose a risk?", FactCategory.CRITICAL_CLAUSES),
        ("WHO IS THE PARTY responsible?", FactCategory.PARTIES),
    ],
)
def test_classify_matches_fact_questions(question, category):
    assert StructuredDataRouter(None).classify(question) == category


def test_can_answer_from_facts():
    router = StructuredDataRouter(None)

    assert router.can_answer_from_facts("What type of document is this?")
    assert not router.can_answer_from_facts("What color is the sky?")
    assert not router.can_answer_from_facts("")


def test_answer_embeds_facts_as_pretty_json():
    llm = FakeLLM("The parties are Acme Builders and the City of Springfield.")
    router = StructuredDataRouter(llm)

    answer = run(router.answer_from_facts("Who are the parties?", FACTS))

    assert answer == "The parties are Acme Builders and the City of Springfield."
    call = llm.calls[0]
    assert call["system_prompt"] == SYSTEM_PROMPT
    assert call["temperature"] == 0.2
    assert call["max_tokens"] == 500
    assert json.dumps(FACTS, indent=2) in call["user_prompt"]
    assert MISSING_FACT_ANSWER in call["user_prompt"]
    assert "Question: Who are the parties?" in call["user_prompt"]


def test_empty_completion_gets_fixed_answer():
    router = StructuredDataRouter(FakeLLM(""))

    assert run(router.answer_from_facts("Who are the parties?", FACTS)) == EMPTY_COMPLETION_ANSWER


def test_generation_failure_raises_structured_failure():
    router = StructuredDataRouter(failing_llm())

    with pytest.raises(StructuredQueryFailure):
        run(router.answer_from_facts("Who are the parties?", FACTS))


def test_missing_provider_raises_structured_failure():
    with pytest.raises(StructuredQueryFailure):
        run(StructuredDataRouter(None).answer_from_facts("Who are the parties?", FACTS))
