# services/answer_composer.py
"""Builds the grounded prompt and asks the generation provider for the answer."""
import logging
from typing import List, Optional

from config import settings
from core.domain import RetrievalResult
from core.interfaces import ILLMService

logger = logging.getLogger(settings.LOGGER_NAME)

SYSTEM_PROMPT = "You are a helpful AI document assistant."
INCOMPLETE_CONTEXT_ANSWER = "Based on the available context, I don't have complete information about that."
GENERATION_ERROR_ANSWER = "Sorry, I encountered an error while trying to answer your question."
EMPTY_COMPLETION_ANSWER = "I couldn't generate an answer for this question."


def build_context(results: List[RetrievalResult]) -> str:
    return "\n\n".join(
        f"SECTION {i} (relevance: {r.score:.2f}):\n{r.text}"
        for i, r in enumerate(results, start=1)
    )


def build_answer_prompt(question: str, context: str, document_name: str) -> str:
    return f"""
You are an AI assistant that answers questions about documents with high precision.
You are currently answering a question about the document: "{document_name}".

CONTEXT FROM THE DOCUMENT:
{context}

USER QUESTION:
{question}

INSTRUCTIONS:
1. Answer the question based ONLY on the provided context.
2. If the answer is not completely contained in the context, say "{INCOMPLETE_CONTEXT_ANSWER}"
3. DO NOT make up or infer information not present in the context.
4. Be specific and cite the relevant parts of the context in your answer.
5. Keep your answer clear, concise, and directly address the question.
6. When the question concerns specific sections, clauses, or details that can be directly quoted, include short quotes in your answer.

ANSWER:
"""


class AnswerComposer:
    def __init__(
        self,
        llm_service: ILLMService,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ):
        self.llm_service = llm_service
        self.temperature = settings.ANSWER_TEMPERATURE if temperature is None else temperature
        self.max_tokens = settings.ANSWER_MAX_TOKENS if max_tokens is None else max_tokens

    async def compose(
        self, question: str, results: List[RetrievalResult], document_name: str = "Document"
    ) -> str:
        """Never raises; failures become a fixed apology text."""
        context = build_context(results)
        logger.info(f"[COMPOSE] Built context for answer generation, length: {len(context)}")

        try:
            completion = await self.llm_service.complete(
                SYSTEM_PROMPT,
                build_answer_prompt(question, context, document_name),
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as e:
            logger.error(f"[COMPOSE] Error generating answer: {e}")
            return GENERATION_ERROR_ANSWER

        if not completion or not completion.strip():
            return EMPTY_COMPLETION_ANSWER

        logger.info(f"[COMPOSE] Generated answer, length: {len(completion)}")
        return completion.strip()
