"""
Structurer Agent — LLM-powered conversion of a scraped detail page into a
structured recruitment record.

The JSON schema is a versioned contract: responses are validated against it
and any provider that errors or returns invalid JSON is marked failed and the
next provider is tried.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from pydantic import BaseModel, ConfigDict, Field

from models.errors import StructuringError

logger = logging.getLogger(__name__)


SCHEMA_VERSION = "2"


class RecruitmentRecord(BaseModel):
    """Structured recruitment details for one job post."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    title: str = Field(min_length=1, description="Official post title")
    organization: Optional[str] = Field(default=None, description="Recruiting body")
    advertisement_number: Optional[str] = Field(default=None, alias="advertisementNumber")
    important_dates: dict[str, Any] = Field(default_factory=dict, alias="importantDates")
    application_fee: dict[str, Any] = Field(default_factory=dict, alias="applicationFee")
    age_limit: dict[str, Any] = Field(default_factory=dict, alias="ageLimit")
    vacancy_details: Any = Field(default=None, alias="vacancyDetails")
    eligibility: Optional[str] = None
    important_links: list[dict[str, Any]] = Field(default_factory=list, alias="importantLinks")
    content: dict[str, Any] = Field(default_factory=dict)


class StructuredRecord(BaseModel):
    """Top-level response shape: {"recruitment": {...}}."""

    recruitment: RecruitmentRecord


STRUCTURER_SYSTEM_PROMPT = """You are a recruitment notice formatter. You receive the scraped content of one government job post page and return its details as JSON.

IMPORTANT INSTRUCTIONS:
1. Use ONLY facts present in the page data. Never invent dates, fees or counts.
2. Put every date you find under "importantDates" using camelCase keys such as
   applicationStartDate, applicationLastDate, examDate, admitCardDate, resultDate,
   answerKeyReleaseDate, correctionDate.
3. Follow this JSON schema (version {version}):
{schema}
4. Return ONLY the JSON object, no other text.
5. Do NOT wrap the JSON in markdown code blocks.

/no_think"""

STRUCTURER_USER_PROMPT = """Format the following scraped job post.

Page data:
{page_json}

Return ONLY the JSON object."""


def _parse_llm_response(response_text: str) -> dict:
    """
    Parse the LLM response into a dict.
    Handles common LLM output quirks (markdown code blocks, extra text, etc.).
    """
    text = response_text.strip()

    if "```json" in text:
        text = text.split("```json")[-1].split("```")[0].strip()
    elif "```" in text:
        text = text.split("```")[1].split("```")[0].strip()

    match = re.search(r"\{.*\}", text, re.DOTALL)
    if match:
        text = match.group(0)

    result = json.loads(text)
    if not isinstance(result, dict):
        raise ValueError("LLM returned JSON that is not an object")
    # Some models skip the wrapper and return the recruitment object directly
    if "recruitment" not in result and "title" in result:
        result = {"recruitment": result}
    return result


@dataclass
class Provider:
    """One LLM endpoint with its health counters."""

    name: str
    model: str
    client: Any = None
    failures: int = 0
    successes: int = 0
    last_error: str = ""


class StructuredExtractor:
    """Provider pool with failover, built once by init()."""

    def __init__(
        self,
        providers: list[dict],
        temperature: float = 0.1,
        max_tokens: int = 2048,
        client_factory: Optional[Callable[..., Any]] = None,
    ):
        self.provider_configs = providers
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client_factory = client_factory or ChatOpenAI
        self.providers: list[Provider] = []

    def init(self) -> None:
        self.providers = []
        for cfg in self.provider_configs:
            client = self.client_factory(
                base_url=cfg.get("base_url"),
                api_key=cfg.get("api_key") or "not-needed",
                model=cfg["model"],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout=45,
            )
            self.providers.append(Provider(name=cfg.get("name", cfg["model"]), model=cfg["model"], client=client))
        logger.info(f"[Structurer] {len(self.providers)} provider(s) ready (schema v{SCHEMA_VERSION})")

    def _ordered_providers(self) -> list[Provider]:
        # Healthiest first; sort is stable so config order breaks ties
        return sorted(self.providers, key=lambda p: p.failures)

    def _messages(self, page_data: dict) -> list:
        schema = json.dumps(StructuredRecord.model_json_schema(by_alias=True), indent=1)
        return [
            SystemMessage(content=STRUCTURER_SYSTEM_PROMPT.format(version=SCHEMA_VERSION, schema=schema)),
            HumanMessage(content=STRUCTURER_USER_PROMPT.format(
                page_json=json.dumps(page_data, ensure_ascii=False),
            )),
        ]

    def extract(self, page_data: dict) -> dict:
        """
        Turn minified page data into a validated structured record.

        Returns:
            {"recruitment": {...}} dumped with camelCase keys.

        Raises:
            StructuringError: when every provider failed.
        """
        if not self.providers:
            raise StructuringError("No structured-extraction providers configured")

        messages = self._messages(page_data)
        last_error = None

        for provider in self._ordered_providers():
            try:
                response = provider.client.invoke(messages)
                parsed = _parse_llm_response(response.content)
                record = StructuredRecord.model_validate(parsed)
            except Exception as e:
                provider.failures += 1
                provider.last_error = str(e)
                last_error = e
                logger.warning(f"[Structurer] Provider {provider.name} failed: {e}")
                continue

            provider.successes += 1
            return record.model_dump(mode="json", by_alias=True, exclude_none=True)

        raise StructuringError(f"All providers failed: {last_error}") from last_error
