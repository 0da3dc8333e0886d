# services/structured_router.py
"""Routes fact-style questions to pre-extracted structured document data."""
import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Pattern

from config import settings
from core.domain import GenerationFailure, StructuredQueryFailure
from core.interfaces import ILLMService

logger = logging.getLogger(settings.LOGGER_NAME)

SYSTEM_PROMPT = "You are a helpful AI document assistant."
MISSING_FACT_ANSWER = "I don't have that specific information in the structured data."
EMPTY_COMPLETION_ANSWER = "I couldn't generate an answer based on the structured data."


class FactCategory(str, Enum):
    DOCUMENT_TYPE = "document_type"
    PARTIES = "parties"
    FINANCIAL_TERMS = "financial_terms"
    DATES = "dates"
    RISKS = "risks"
    OBLIGATIONS = "obligations"
    TERMINATION = "termination"
    CRITICAL_CLAUSES = "critical_clauses"


@dataclass(frozen=True)
class FactRule:
    category: FactCategory
    pattern: Pattern[str]


def _rule(category: FactCategory, pattern: str) -> FactRule:
    return FactRule(category=category, pattern=re.compile(pattern, re.IGNORECASE))


# Ordered; the first matching rule decides the category
FACT_RULES: List[FactRule] = [
    # General document information
    _rule(FactCategory.DOCUMENT_TYPE, r"what (type|kind) of (document|contract)"),
    _rule(FactCategory.PARTIES, r"who (are|is) the part(y|ies)"),
    _rule(FactCategory.PARTIES, r"who (signed|executed) the (document|contract|agreement)"),
    # Financial terms
    _rule(FactCategory.FINANCIAL_TERMS, r"what('s| is| are) the (financial terms|payment terms|total amount|contract sum)"),
    _rule(FactCategory.FINANCIAL_TERMS, r"how much (money|payment|is the contract worth)"),
    _rule(FactCategory.FINANCIAL_TERMS, r"(what|when|how) (is|are) (payment|payments) (made|scheduled)"),
    # Dates and timelines
    _rule(FactCategory.DATES, r"when (was|is) the (effective date|termination date|completion date)"),
    _rule(FactCategory.DATES, r"what('s| is| are) the (deadline|timeline|schedule)"),
    # Risks
    _rule(FactCategory.RISKS, r"what (are|is) the (risk|risks)"),
    _rule(FactCategory.RISKS, r"what financial risks"),
    _rule(FactCategory.RISKS, r"what legal (risk|risks)"),
    _rule(FactCategory.RISKS, r"what performance (risk|risks)"),
    _rule(FactCategory.RISKS, r"what termination (risk|risks)"),
    _rule(FactCategory.RISKS, r"what compliance (risk|risks)"),
    # Obligations
    _rule(FactCategory.OBLIGATIONS, r"what (are|is) the (key|main) obligations"),
    _rule(FactCategory.OBLIGATIONS, r"what (must|should|is required to) the (contractor|owner|party)"),
    # Termination
    _rule(FactCategory.TERMINATION, r"how can (this|the) (contract|agreement) be terminated"),
    _rule(FactCategory.TERMINATION, r"what are the termination (conditions|clauses|terms)"),
    # Critical clauses
    _rule(FactCategory.CRITICAL_CLAUSES, r"what (are|is) the (critical|important|key) clauses"),
    _rule(FactCategory.CRITICAL_CLAUSES, r"which clauses (are|pose) (a risk|risks|problematic)"),
]


def build_fact_prompt(question: str, facts: Dict[str, Any]) -> str:
    return f"""
You are an AI assistant that answers questions about documents based on structured data.
You have access to the following structured data about a document:

{json.dumps(facts, indent=2, ensure_ascii=False, default=str)}

Question: {question}

Provide a concise, factual answer based strictly on the structured data above.
Do not make up information. If the structured data doesn't contain the information needed to answer the question,
say "{MISSING_FACT_ANSWER}"

Answer:
"""


class StructuredDataRouter:
    """
    Decides whether a question is about document facts (parties, dates,
    payment terms, ...) and answers it from the structured fact record.
    """

    def __init__(
        self,
        llm_service: Optional[ILLMService],
        rules: Optional[List[FactRule]] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ):
        self.llm_service = llm_service
        self.rules = rules if rules is not None else FACT_RULES
        self.temperature = settings.STRUCTURED_TEMPERATURE if temperature is None else temperature
        self.max_tokens = settings.ANSWER_MAX_TOKENS if max_tokens is None else max_tokens

    def classify(self, question: str) -> Optional[FactCategory]:
        if not question:
            return None
        for rule in self.rules:
            if rule.pattern.search(question):
                return rule.category
        return None

    def can_answer_from_facts(self, question: str) -> bool:
        return self.classify(question) is not None

    async def answer_from_facts(self, question: str, facts: Dict[str, Any]) -> str:
        """
        Raises:
            StructuredQueryFailure: no generation provider, or generation failed
        """
        if self.llm_service is None:
            raise StructuredQueryFailure("No generation provider configured")

        category = self.classify(question)
        logger.info(f"[STRUCTURED] Answering {category.value if category else 'unmatched'} question from facts")

        try:
            completion = await self.llm_service.complete(
                SYSTEM_PROMPT,
                build_fact_prompt(question, facts),
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except GenerationFailure as e:
            raise StructuredQueryFailure(f"Structured data query failed: {e.message}") from e
        except Exception as e:
            raise StructuredQueryFailure(f"Structured data query failed: {e}") from e

        if not completion or not completion.strip():
            return EMPTY_COMPLETION_ANSWER
        return completion.strip()
