"""
Extraction Gateway.

The single boundary to the external text-understanding service. Every call
truncates its input to a character budget, retries rate-limit and
transient failures with exponential backoff, parses the reply
leniently and fails closed: callers get an "invalid" result or an empty
value, never an exception.

Usage:
    gateway = ExtractionGateway()
    result = await gateway.validate_and_extract(text, date_context="2026-03-02")
    if result.is_valid:
        fields = result.data
"""
import asyncio
import json
import logging
import re
from datetime import date
from typing import Any, Awaitable, Callable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from scout.core.ai_client import CompletionClient
from scout.core.config import settings
from scout.core.data_types import CompanyData, ExtractedFields, ExtractionResult
from scout.core.errors import ExtractionError, RateLimitError, TransientAIError
from scout.core.utils import parse_date
from scout.extraction.prompts import (
    COMPANY_EXTRACTION_PROMPT,
    DATE_HINT,
    FOUNDER_EXTRACTION_PROMPT,
    INDUSTRY_CLASSIFICATION_PROMPT,
    STARTUP_EXTRACTION_PROMPT,
)

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"

KNOWN_INDUSTRIES = [
    "AI", "Fintech", "Healthcare", "Biotech", "Developer Tools", "SaaS", "Cybersecurity",
    "Climate", "Energy", "E-commerce", "Consumer", "Education", "Robotics", "Hardware",
    "Mobility", "Real Estate", "Media", "Gaming", "Crypto", "Logistics", "Food", "HR",
    "Legal", "Marketing", "Insurance", "Defense", "Space", "Other",
]

_FENCE_RE = re.compile(r"^\s*```(?:json|JSON)?\s*|\s*```\s*$")


# ──── Reply schemas ────

class _Lenient(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


def _as_name_list(v) -> List[str]:
    if v is None:
        return []
    if isinstance(v, str):
        return [p.strip() for p in v.split(",") if p.strip()]
    if isinstance(v, list):
        return [str(p).strip() for p in v if p is not None and str(p).strip()]
    raise ValueError("expected a list of strings")


class StartupData(_Lenient):
    name: Optional[str] = None
    date_announced: Optional[str] = Field(default=None, alias="dateAnnounced")
    description: Optional[str] = None
    website: Optional[str] = None
    funding_amount: Optional[str] = Field(default=None, alias="fundingAmount")
    round_type: Optional[str] = Field(default=None, alias="roundType")
    location: Optional[str] = None
    industry: Optional[str] = None
    founders: List[str] = Field(default_factory=list)
    investors: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)

    @field_validator("founders", "investors", "tags", mode="before")
    @classmethod
    def coerce_lists(cls, v):
        return _as_name_list(v)

    @field_validator("funding_amount", mode="before")
    @classmethod
    def coerce_amount(cls, v):
        if isinstance(v, (int, float)):
            return str(v)
        return v


class StartupReply(_Lenient):
    is_valid: bool = Field(alias="isValid")
    reason: Optional[str] = None
    data: Optional[StartupData] = None


class CompanyReply(_Lenient):
    is_startup: bool = Field(default=False, alias="isStartup")
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    company: Optional[StartupData] = None


class IndustryReply(_Lenient):
    industry: Optional[str] = None


# ──── Helpers ────

def parse_json_payload(text: str) -> Any:
    """
    Parse an untrusted model reply as JSON.
    Strips markdown code fences; falls back to the outermost {...} / [...] span.
    Raises ExtractionError when nothing parses.
    """
    if text is None:
        raise ExtractionError("Empty model reply")
    cleaned = _FENCE_RE.sub("", text.strip()).strip()
    if not cleaned:
        raise ExtractionError("Empty model reply")
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    for opener, closer in (("{", "}"), ("[", "]")):
        start, end = cleaned.find(opener), cleaned.rfind(closer)
        if start != -1 and end > start:
            try:
                return json.loads(cleaned[start:end + 1])
            except json.JSONDecodeError:
                continue
    raise ExtractionError(f"Model reply is not JSON: {cleaned[:120]!r}")


def resolve_announcement_date(
    extracted: Optional[str],
    date_context: Optional[str] = None,
    today: Optional[date] = None,
) -> str:
    """Extracted date, else the context date, else today, as YYYY-MM-DD."""
    for candidate in (extracted, date_context):
        parsed = parse_date(candidate)
        if parsed:
            return parsed.strftime(DATE_FORMAT)
    return (today or date.today()).strftime(DATE_FORMAT)


class ExtractionGateway:
    def __init__(
        self,
        client: Optional[CompletionClient] = None,
        max_attempts: Optional[int] = None,
        backoff_base: Optional[float] = None,
        backoff_max: Optional[float] = None,
        char_budget: Optional[int] = None,
        company_char_budget: Optional[int] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.client = client or CompletionClient()
        self.max_attempts = max_attempts or settings.llm_max_retries
        self.backoff_base = backoff_base if backoff_base is not None else settings.llm_backoff_base_seconds
        self.backoff_max = backoff_max if backoff_max is not None else settings.llm_backoff_max_seconds
        self.char_budget = char_budget or settings.extraction_char_budget
        self.company_char_budget = company_char_budget or settings.company_extraction_char_budget
        self._sleep = sleep

    async def _complete(self, prompt: str) -> str:
        """Call the service, retrying 429/transient failures with exponential backoff."""
        for attempt in range(self.max_attempts):
            try:
                return await self.client.generate(prompt)
            except (RateLimitError, TransientAIError) as e:
                if attempt + 1 >= self.max_attempts:
                    raise ExtractionError(
                        f"Gave up after {self.max_attempts} attempts: {e}"
                    ) from e
                delay = min(self.backoff_base * (2 ** attempt), self.backoff_max)
                logger.warning(
                    f"Extraction call failed ({e}). Retrying in {delay:.1f}s "
                    f"(attempt {attempt + 2}/{self.max_attempts})"
                )
                await self._sleep(delay)
        raise ExtractionError("No extraction attempts configured")

    async def validate_and_extract(
        self,
        text: str,
        date_context: Optional[str] = None,
    ) -> ExtractionResult:
        """Classify a raw item and extract startup fields. Never raises."""
        if not text or not text.strip():
            return ExtractionResult.invalid("empty_text")

        hint = DATE_HINT.format(date_context=date_context) if date_context else ""
        prompt = STARTUP_EXTRACTION_PROMPT.format(
            text=text[:self.char_budget],
            date_hint=hint,
        )

        try:
            payload = parse_json_payload(await self._complete(prompt))
            reply = StartupReply.model_validate(payload)
        except ExtractionError as e:
            logger.warning(f"Extraction failed closed: {e}")
            return ExtractionResult.invalid(f"extraction_error: {e}")
        except ValidationError as e:
            logger.warning(f"Extraction reply violated schema: {e.error_count()} errors")
            return ExtractionResult.invalid("schema_violation")

        if not reply.is_valid:
            return ExtractionResult.invalid(reply.reason or "not_a_funding_event")
        if reply.data is None:
            return ExtractionResult.invalid("schema_violation: missing data")

        data = reply.data
        fields = ExtractedFields(
            name=data.name.strip() if data.name else None,
            date_announced=resolve_announcement_date(data.date_announced, date_context),
            description=data.description,
            website=data.website,
            funding_amount=data.funding_amount,
            round_type=data.round_type,
            location=data.location,
            industry=data.industry,
            founders=data.founders,
            investors=data.investors,
            tags=data.tags,
        )
        return ExtractionResult.valid(fields)

    async def extract_company(self, text: str, source_url: str = "") -> Optional[CompanyData]:
        """Company-extraction capability used by search. None when no startup is found."""
        if not text or not text.strip():
            return None
        prompt = COMPANY_EXTRACTION_PROMPT.format(
            text=text[:self.company_char_budget],
            source_url=source_url or "unknown",
        )
        try:
            reply = CompanyReply.model_validate(parse_json_payload(await self._complete(prompt)))
        except (ExtractionError, ValidationError) as e:
            logger.debug(f"Company extraction failed for {source_url}: {e}")
            return None

        if not reply.is_startup or reply.company is None or not reply.company.name:
            return None

        c = reply.company
        return CompanyData(
            name=c.name.strip(),
            description=c.description,
            website=c.website,
            funding_amount=c.funding_amount,
            round_type=c.round_type,
            date_announced=c.date_announced,
            location=c.location,
            industry=c.industry,
            founders=c.founders,
            investors=c.investors,
            source_url=source_url or None,
            confidence=reply.confidence,
        )

    async def extract_founders(self, company: str, text: str) -> List[str]:
        """Founder names stated in the text. Empty list on any failure."""
        if not text or not text.strip():
            return []
        prompt = FOUNDER_EXTRACTION_PROMPT.format(company=company, text=text[:self.char_budget])
        try:
            payload = parse_json_payload(await self._complete(prompt))
        except ExtractionError as e:
            logger.debug(f"Founder extraction failed for {company}: {e}")
            return []
        if isinstance(payload, dict):
            payload = payload.get("founders", [])
        try:
            return _as_name_list(payload)
        except ValueError:
            return []

    async def classify_industry(self, name: str, description: Optional[str]) -> Optional[str]:
        """Pick one label from KNOWN_INDUSTRIES, or None."""
        prompt = INDUSTRY_CLASSIFICATION_PROMPT.format(
            industries=", ".join(KNOWN_INDUSTRIES),
            name=name,
            description=(description or "")[:1000],
        )
        try:
            reply = IndustryReply.model_validate(parse_json_payload(await self._complete(prompt)))
        except (ExtractionError, ValidationError) as e:
            logger.debug(f"Industry classification failed for {name}: {e}")
            return None
        if not reply.industry:
            return None
        for label in KNOWN_INDUSTRIES:
            if label.lower() == reply.industry.strip().lower():
                return label
        return None
