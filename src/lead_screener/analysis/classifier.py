"""
Client for OpenAI-compatible chat-completion endpoints.

Sends crawled site text with a templated prompt and turns the reply into a
Y/N classification, plus optional company name and email extraction.
"""
from typing import Any, Dict, List, Optional
import json
import re
import time

import httpx

from ..core.config import Settings, settings as default_settings
from ..core.errors import AnalysisConfigError, AnalysisError, AnalysisFailure
from ..core.logging import logger
from ..models.analysis import (
    AnalysisConfig,
    ClassificationResult,
    CompanyInfo,
    ConnectionCheck,
    CrawledContent,
    EmailInfo,
)


REASON_LIMIT = 500
FALLBACK_REASON_LIMIT = 300
RAW_PREVIEW_LIMIT = 200
CHECK_PREVIEW_LIMIT = 100

_FENCE = re.compile(r"```(?:json)?\s*")
_RESULT_FIELD = re.compile(r"[\"'\s]*result[\"'\s]*:\s*[\"'\s]*(Y|N)\b", re.IGNORECASE)
_REASON_FIELD = re.compile(r"[\"'\s]*reason[\"'\s]*:\s*[\"'\s]*([^\"]+)", re.IGNORECASE)
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

INVALID_EMAIL_PATTERNS = [
    re.compile(r"\.(png|jpg|jpeg|gif|webp|svg|ico)$", re.IGNORECASE),
    re.compile(r"cdn\.", re.IGNORECASE),
    re.compile(r"example\.com$", re.IGNORECASE),
    re.compile(r"test@", re.IGNORECASE),
    re.compile(r"demo@", re.IGNORECASE),
]

_PLACEHOLDER_DEFAULTS = {
    "title": "Untitled",
    "description": "No description",
    "content": "No content",
    "footerContent": "No footer information",
    "pages": "Home page only",
    "keywords": "No keywords",
    "companyInfo": "No company information",
    "url": "Unknown URL",
}


def build_prompt(template: str, content: CrawledContent) -> str:
    """
    Substitute ``{placeholder}`` tokens in a prompt template.

    Tokens with no crawled value get a readable default instead of an
    empty string.
    """
    values = {
        "title": content.title,
        "description": content.description,
        "content": content.content,
        "footerContent": content.footer_content,
        "pages": ", ".join(content.pages),
        "keywords": content.keywords,
        "companyInfo": content.company_info,
        "url": content.url,
    }
    prompt = template
    for token, value in values.items():
        prompt = prompt.replace("{" + token + "}", value or _PLACEHOLDER_DEFAULTS[token])
    return prompt


def strip_fences(text: str) -> str:
    return _FENCE.sub("", text).strip()


def parse_classification(text: str) -> ClassificationResult:
    """
    Parse a model reply into a classification.

    Strict JSON is tried first, then regex extraction of ``result``/``reason``
    fields. A reply with neither yields ``N`` with the raw reply quoted in
    the reason. Never raises.
    """
    cleaned = strip_fences(text)

    try:
        parsed = json.loads(cleaned)
    except ValueError:
        parsed = None

    if isinstance(parsed, dict):
        confidence = parsed.get("confidence")
        if not isinstance(confidence, (int, float)) or isinstance(confidence, bool):
            confidence = None
        return ClassificationResult(
            result="Y" if str(parsed.get("result", "")).strip().upper() == "Y" else "N",
            reason=str(parsed.get("reason") or "No reason given")[:REASON_LIMIT],
            confidence=confidence,
        )

    logger.warning(f"Model reply is not JSON, falling back to field extraction: {text[:RAW_PREVIEW_LIMIT]!r}")
    result_match = _RESULT_FIELD.search(cleaned)
    if result_match:
        reason_match = _REASON_FIELD.search(cleaned)
        reason = reason_match.group(1).strip()[:REASON_LIMIT] if reason_match else cleaned[:FALLBACK_REASON_LIMIT]
        return ClassificationResult(result=result_match.group(1).upper(), reason=reason)

    return ClassificationResult(
        result="N",
        reason=f"Unparsed model response: {text[:RAW_PREVIEW_LIMIT]}",
    )


def parse_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Parse a JSON object, or the first {...} span inside free text."""
    cleaned = strip_fences(text)
    candidates = [cleaned]
    match = _JSON_OBJECT.search(cleaned)
    if match:
        candidates.append(match.group(0))

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


def filter_valid_emails(emails: List[EmailInfo]) -> List[EmailInfo]:
    """Drop image names, CDN hosts and placeholder addresses."""
    return [
        e for e in emails
        if not any(pattern.search(e.email) for pattern in INVALID_EMAIL_PATTERNS)
    ]


def classify_http_error(exc: httpx.HTTPError) -> AnalysisError:
    """Map a transport or HTTP status failure to an AnalysisError."""
    if isinstance(exc, httpx.TimeoutException):
        return AnalysisError(AnalysisFailure.TIMEOUT, str(exc))
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        failure = {
            401: AnalysisFailure.INVALID_API_KEY,
            429: AnalysisFailure.RATE_LIMITED,
            400: AnalysisFailure.BAD_REQUEST,
        }.get(status, AnalysisFailure.UNKNOWN)
        detail = "" if failure != AnalysisFailure.UNKNOWN else f"HTTP {status}"
        return AnalysisError(failure, detail, status=status)
    return AnalysisError(AnalysisFailure.UNKNOWN, str(exc) or type(exc).__name__)


class ClassifierClient:
    """Chat-completion client for website classification and extraction."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.config = config or default_settings
        self._client = httpx.AsyncClient(transport=transport)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        await self._client.aclose()

    @staticmethod
    def validate_config(config: Optional[AnalysisConfig]) -> AnalysisConfig:
        if config is None or not config.api_key:
            raise AnalysisConfigError("apiKey")
        if not config.api_url:
            raise AnalysisConfigError("apiUrl")
        return config

    async def _complete(
        self,
        config: AnalysisConfig,
        messages: List[Dict[str, str]],
        timeout: float,
        max_tokens: Optional[int] = None,
        json_mode: bool = False
    ) -> str:
        payload: Dict[str, Any] = {
            "model": config.model_name,
            "messages": messages,
            "temperature": self.config.LLM_TEMPERATURE,
        }
        if max_tokens:
            payload["max_tokens"] = max_tokens
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        try:
            response = await self._client.post(
                config.api_url,
                json=payload,
                headers={
                    "Authorization": f"Bearer {config.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=timeout,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise classify_http_error(e) from e
        except ValueError as e:
            raise AnalysisError(AnalysisFailure.UNKNOWN, "response body is not JSON") from e

        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            text = None
        if not text:
            raise AnalysisError(AnalysisFailure.EMPTY_RESPONSE)
        return text

    async def classify(self, config: AnalysisConfig, content: CrawledContent) -> ClassificationResult:
        """
        Classify a crawled site as target customer (Y) or not (N).

        Args:
            config: Endpoint, key, model and prompt template
            content: Crawled site content

        Returns:
            ClassificationResult parsed from the model reply

        Raises:
            AnalysisConfigError: If the API key or URL is missing
            AnalysisError: On transport failure or an empty reply
        """
        config = self.validate_config(config)
        if not content.content:
            raise AnalysisError(AnalysisFailure.NO_CONTENT)

        messages = [
            {"role": "system", "content": self.config.LLM_SYSTEM_PROMPT},
            {"role": "user", "content": build_prompt(config.prompt_template, content)},
        ]
        reply = await self._complete(
            config,
            messages,
            timeout=self.config.LLM_TIMEOUT,
            max_tokens=self.config.LLM_MAX_TOKENS,
            json_mode=True,
        )
        return parse_classification(reply)

    async def check_connection(self, config: AnalysisConfig) -> ConnectionCheck:
        """
        Send a short test prompt and report whether the endpoint answered.

        Endpoint failures are reported in the result rather than raised.

        Raises:
            AnalysisConfigError: If the API key, URL or model name is missing
        """
        config = self.validate_config(config)
        if not config.model_name:
            raise AnalysisConfigError("modelName")

        started = time.perf_counter()
        try:
            reply = await self._complete(
                config,
                [{"role": "user", "content": self.config.LLM_CHECK_PROMPT}],
                timeout=self.config.LLM_CHECK_TIMEOUT,
                max_tokens=self.config.LLM_CHECK_MAX_TOKENS,
            )
        except AnalysisError as e:
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            logger.warning(f"Connection check against {config.api_url} failed: {e.message}")
            return ConnectionCheck(
                status="error",
                message=e.message,
                model=config.model_name,
                response_time=elapsed_ms,
                error=e.failure.value,
            )

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        logger.info(f"Connection check against {config.api_url} succeeded in {elapsed_ms}ms")
        return ConnectionCheck(
            status="success",
            message="API connection succeeded",
            model=config.model_name,
            response_time=elapsed_ms,
            response=reply[:CHECK_PREVIEW_LIMIT],
        )

    async def extract_company_info(self, config: AnalysisConfig, content: str) -> Optional[CompanyInfo]:
        """
        Ask the model for the site's company names.

        Returns None when no prompt is configured or the reply is unusable.
        """
        if not config.company_name_prompt or not content:
            return None

        config = self.validate_config(config)
        reply = await self._complete(
            config,
            [{"role": "user", "content": config.company_name_prompt.replace("{content}", content)}],
            timeout=self.config.LLM_EXTRACTION_TIMEOUT,
        )
        parsed = parse_json_object(reply)
        if parsed is None:
            logger.warning("Company info reply could not be parsed")
            return None

        return CompanyInfo(
            primary_name=str(parsed.get("primaryName") or ""),
            full_name=str(parsed.get("fullName") or ""),
            names=[str(n) for n in parsed.get("names") or []],
            brand_names=[str(n) for n in parsed.get("brandNames") or []],
            founder_names=[str(n) for n in parsed.get("founderNames") or []],
        )

    async def extract_emails(self, config: AnalysisConfig, content: str, source: str = "") -> List[EmailInfo]:
        """
        Ask the model for email addresses found in the content.

        Returns an empty list when no prompt is configured or the reply is
        unusable.
        """
        if not config.email_prompt or not content:
            return []

        config = self.validate_config(config)
        reply = await self._complete(
            config,
            [{"role": "user", "content": config.email_prompt.replace("{content}", content)}],
            timeout=self.config.LLM_EXTRACTION_TIMEOUT,
        )
        parsed = parse_json_object(reply)
        if parsed is None:
            logger.warning("Email reply could not be parsed")
            return []

        emails = []
        for item in parsed.get("emails") or []:
            if isinstance(item, str):
                emails.append(EmailInfo(email=item, source=source))
            elif isinstance(item, dict) and item.get("email"):
                emails.append(EmailInfo(
                    email=str(item["email"]),
                    source=str(item.get("source") or source),
                    description=str(item.get("description") or ""),
                ))
        return filter_valid_emails(emails)
