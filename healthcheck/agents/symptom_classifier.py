"""Symptom classifier backed by the AI gateway.

Builds the triage prompt, calls the chat model and parses its JSON answer
into a :class:`TriageVerdict`. Gateway failures raise :class:`ClassifierError`
with an HTTP-ish status; unusable model output raises
:class:`VerdictParseError`. Callers decide how to degrade.
"""

from typing import List, Optional, Protocol
from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import ValidationError
from healthcheck.agents.prompts import CLASSIFIER_SYSTEM_PROMPT, build_user_prompt
from healthcheck.config.llm_config import GatewayNotConfiguredError, get_classifier_model
from healthcheck.models.verdict import FollowUpAnswer, TriageVerdict
from healthcheck.utils.llm_helpers import (
    invoke_llm_with_timeout,
    parse_json_object,
    response_text,
)
import logging

logger = logging.getLogger(__name__)


class ClassifierError(Exception):
    """The classifier could not produce a verdict."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class VerdictParseError(ClassifierError):
    """The model answered, but not with a usable verdict."""

    def __init__(self, message: str):
        super().__init__(message, status_code=200)


class SymptomClassifier(Protocol):
    """Anything that turns symptoms (and optional answers) into a verdict."""

    async def classify(
        self,
        symptoms: List[str],
        narrative: Optional[str] = None,
        responses: Optional[List[FollowUpAnswer]] = None,
    ) -> TriageVerdict: ...


def parse_verdict(raw: str) -> TriageVerdict:
    """Parse model output into a verdict.

    Raises:
        VerdictParseError: Empty, non-JSON, ``{"error": ...}`` or schema-invalid output
    """
    try:
        data = parse_json_object(raw)
    except ValueError as e:
        raise VerdictParseError(f"Unparseable classifier output: {e}") from e

    if "error" in data and "urgencyLevel" not in data:
        raise VerdictParseError(f"Classifier returned an error: {data['error']}")

    try:
        return TriageVerdict.model_validate(data)
    except ValidationError as e:
        raise VerdictParseError(
            f"Classifier output failed validation ({e.error_count()} errors)"
        ) from e


def _gateway_error(exc: Exception) -> ClassifierError:
    status_code = getattr(exc, "status_code", None)
    if status_code == 429:
        return ClassifierError("Rate limit exceeded. Please try again later.", 429)
    if status_code == 402:
        return ClassifierError(
            "Service temporarily unavailable. Please try again later.", 402
        )
    if status_code:
        return ClassifierError(f"AI gateway error: {status_code}", 502)
    return ClassifierError(f"AI gateway unreachable: {exc}", 502)


class LLMSymptomClassifier:
    """Classifier that prompts the gateway chat model for a JSON verdict."""

    def __init__(self, llm=None):
        self._llm = llm

    def _model(self):
        if self._llm is None:
            try:
                self._llm = get_classifier_model()
            except GatewayNotConfiguredError as e:
                raise ClassifierError(str(e), status_code=503) from e
        return self._llm

    async def classify(
        self,
        symptoms: List[str],
        narrative: Optional[str] = None,
        responses: Optional[List[FollowUpAnswer]] = None,
    ) -> TriageVerdict:
        llm = self._model()
        messages = [
            SystemMessage(content=CLASSIFIER_SYSTEM_PROMPT),
            HumanMessage(content=build_user_prompt(symptoms, narrative, responses)),
        ]

        logger.info(
            f"Classifying {len(symptoms)} symptom(s) "
            f"(narrative={'yes' if narrative else 'no'}, "
            f"responses={len(responses) if responses else 0})"
        )

        try:
            response = await invoke_llm_with_timeout(llm, messages)
        except Exception as e:
            raise _gateway_error(e) from e

        content = response_text(response)
        logger.debug(f"Classifier response: {content[:500]}")

        verdict = parse_verdict(content)
        logger.info(
            f"Verdict: urgency={verdict.urgency_level.value}, "
            f"follow_up={len(verdict.follow_up_questions)}, "
            f"needs_clarification={verdict.needs_clarification}"
        )
        return verdict


_classifier: Optional[LLMSymptomClassifier] = None


def get_symptom_classifier() -> LLMSymptomClassifier:
    """Get or create the process-wide classifier."""
    global _classifier
    if _classifier is None:
        _classifier = LLMSymptomClassifier()
    return _classifier
