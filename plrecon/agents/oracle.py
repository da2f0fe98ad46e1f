"""
Match Oracle Client
Asks an LLM which reference row, if any, a free-text entity name refers to.
"""

import json
import re
import time
from typing import Callable, Iterable, List, Optional, Set

from langchain_openai import ChatOpenAI
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_core.prompts import PromptTemplate

from plrecon.schemas.candidate import CandidateRecord
from plrecon.schemas.decision import MatchDecision
from plrecon.errors import OracleError, OracleSchemaError, OracleTransportError
from plrecon.utils.retry import RetryPolicy
from plrecon.utils.logging import setup_logging, log_component_action
from plrecon.config import get_config


logger = setup_logging(__name__)
config = get_config()


MATCHING_PROMPT_TEMPLATE = """Task: decide whether the source entity name refers to one of the candidate names.

Source name: "{query}"

Candidates (reference | name):
{candidates}

Rules:
1. Consider variations in spelling, abbreviations and company suffixes (SRL, S.R.L., SA, LLC, Ltd)
2. Account for different languages (e.g. English vs Romanian company types)
3. Ignore case, spacing and special characters
4. Accept a partial match only if it uniquely identifies the company
5. Copy the reference exactly as listed; never answer with a position number

Return ONLY JSON in this format:
{{"matched": true, "reference": "Clients:A:2 or null", "confidence": 0.9, "explanation": "brief"}}"""


MOCK_RESPONSE = '{"matched": false, "reference": null, "confidence": 0.0, "explanation": "Mock mode - no oracle consulted"}'


def get_llm(model_name: str = None):
    """Get LLM instance based on provider."""
    model = model_name or config.LLM_MODEL

    if config.LLM_PROVIDER == "gemini":
        return ChatGoogleGenerativeAI(
            model=model,
            google_api_key=config.GOOGLE_API_KEY,
            temperature=config.LLM_TEMPERATURE,
            max_output_tokens=config.LLM_MAX_TOKENS,
            timeout=config.LLM_TIMEOUT,
        )
    else:
        return ChatOpenAI(
            model=model,
            api_key=config.LLM_API_KEY,
            base_url=config.LLM_API_BASE,
            temperature=config.LLM_TEMPERATURE,
            max_tokens=config.LLM_MAX_TOKENS,
            timeout=config.LLM_TIMEOUT,
        )


def get_llm_response_text(response) -> str:
    """Extract textual content from a chat model response."""
    content = getattr(response, "content", response)

    # Some providers return a list of content blocks
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, dict):
                parts.append(str(block.get("text", "")))
            else:
                parts.append(str(block))
        content = "".join(parts)

    if not isinstance(content, str) or not content.strip():
        raise OracleSchemaError("Empty response from oracle")

    return content.strip()


def parse_json_object(text: str) -> dict:
    """
    Pull a JSON object out of an LLM response.
    Tolerates markdown code fences and prose around the object.
    """
    text = text.strip()

    try:
        result = json.loads(text)
        if isinstance(result, dict):
            return result
    except json.JSONDecodeError:
        pass

    match = re.search(r'```(?:json)?\s*(.*?)\s*```', text, re.DOTALL)
    if match:
        try:
            result = json.loads(match.group(1))
            if isinstance(result, dict):
                return result
        except json.JSONDecodeError:
            pass

    start = text.find('{')
    end = text.rfind('}')
    if start >= 0 and end > start:
        try:
            result = json.loads(text[start:end + 1])
            if isinstance(result, dict):
                return result
        except json.JSONDecodeError:
            pass

    preview = text[:300]
    raise OracleSchemaError(f"Could not parse JSON from oracle response: {preview}")


def parse_match_decision(payload: dict, references: Set[str]) -> MatchDecision:
    """
    Validate an oracle payload against the MatchDecision contract.

    A matched decision must point at one of the offered references. The
    reference of an unmatched decision is dropped.
    """
    missing = [key for key in ("matched", "confidence") if key not in payload]
    if missing:
        raise OracleSchemaError(f"Oracle response missing required fields: {', '.join(missing)}")

    matched = payload["matched"]
    if not isinstance(matched, bool):
        raise OracleSchemaError(f"'matched' must be a boolean, got {matched!r}")

    confidence = payload["confidence"]
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        raise OracleSchemaError(f"'confidence' must be a number, got {confidence!r}")
    if not 0.0 <= confidence <= 1.0:
        raise OracleSchemaError(f"'confidence' out of range [0, 1]: {confidence}")

    reference = payload.get("reference")
    if matched:
        if not isinstance(reference, str) or reference not in references:
            raise OracleSchemaError(f"Oracle matched an unknown reference: {reference!r}")
    else:
        reference = None

    explanation = payload.get("explanation")

    return MatchDecision(
        matched=matched,
        reference=reference,
        confidence=float(confidence),
        explanation=str(explanation) if explanation is not None else None,
    )


class MatchOracleClient:
    """
    Wraps one fuzzy-matching question to the LLM.

    Transport and schema failures are retried according to the retry
    policy. Once the policy is exhausted the client answers with a degraded
    no-match decision instead of raising, so one bad entry cannot stop a
    batch.
    """

    def __init__(
        self,
        llm=None,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._llm = llm
        self.retry_policy = retry_policy or RetryPolicy.from_config()
        self._sleep = sleep
        self._prompt = PromptTemplate(
            input_variables=["query", "candidates"],
            template=MATCHING_PROMPT_TEMPLATE,
        )

    @property
    def llm(self):
        if self._llm is None and not config.LLM_MOCK_MODE:
            self._llm = get_llm()
        return self._llm

    def build_prompt(self, query: str, candidates: Iterable[CandidateRecord]) -> str:
        listing = "\n".join(f"{c.reference} | {c.text}" for c in candidates)
        return self._prompt.format(query=query, candidates=listing)

    def _complete(self, prompt: str) -> str:
        llm = self.llm
        if llm is None:
            logger.info("[MatchOracleClient] Mock mode enabled - returning canned no-match response")
            return MOCK_RESPONSE

        try:
            response = llm.invoke(prompt)
        except Exception as e:
            raise OracleTransportError(f"Oracle call failed: {e}") from e

        return get_llm_response_text(response)

    def _request(self, query: str, candidates: List[CandidateRecord], references: Set[str]) -> MatchDecision:
        """One attempt. Raises OracleTransportError or OracleSchemaError."""
        text = self._complete(self.build_prompt(query, candidates))
        logger.debug(f"[MatchOracleClient] Raw response: {text[:300]}")
        return parse_match_decision(parse_json_object(text), references)

    def find_best_match(self, query: str, candidates: List[CandidateRecord]) -> MatchDecision:
        """Resolve query against candidates. Never raises oracle errors."""
        if not candidates:
            return MatchDecision.no_match(explanation="No candidates to compare against")

        references = {candidate.reference for candidate in candidates}

        def on_retry(attempt: int, error: BaseException) -> None:
            logger.warning(
                f"[MatchOracleClient] Attempt {attempt} for '{query}' failed: {error}. "
                f"Retrying in {self.retry_policy.delay_for(attempt):.1f}s"
            )

        try:
            decision = self.retry_policy.call(
                lambda: self._request(query, candidates, references),
                retry_on=(OracleError,),
                sleep=self._sleep,
                on_retry=on_retry,
            )
        except OracleError as e:
            logger.error(f"[MatchOracleClient] Giving up on '{query}' after {self.retry_policy.max_attempts} attempts: {e}")
            return MatchDecision.no_match(explanation=f"Oracle unavailable: {e}")

        log_component_action(
            logger,
            "MatchOracleClient",
            f"Resolved '{query}'",
            {"matched": decision.matched, "reference": decision.reference},
            decision.confidence,
        )
        return decision
