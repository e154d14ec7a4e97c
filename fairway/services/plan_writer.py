"""
Plan writer — asks an LLM gateway to turn ranked windows, the group's
constraint envelope and the matched course list into 2-3 plan options.

The gateway speaks the OpenAI chat-completions format. Its reply is raw
text; parsing and validation happen in ``plan_synthesis``.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import httpx

from fairway.config import settings
from fairway.services.constraints import ConstraintEnvelope, coerce_budget
from fairway.services.overlap import OverlapWindow

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a golf outing planner. Generate plan options as valid JSON only, "
    "no markdown or extra text."
)


# ── Failures ──

class SynthesisError(Exception):
    """Base class for plan writer failures surfaced to callers."""

    retryable = True

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SynthesisRateLimited(SynthesisError):
    pass


class SynthesisQuotaExhausted(SynthesisError):
    pass


class SynthesisUnreachable(SynthesisError):
    pass


class MalformedSynthesisOutput(SynthesisError):
    retryable = False


# ── Request ──

@dataclass
class PlanRequest:
    windows: List[OverlapWindow]
    envelope: ConstraintEnvelope
    courses: Sequence
    participant_count: int
    location: Optional[str] = None


def build_prompt(request: PlanRequest) -> str:
    windows_list = "\n".join(
        f"{w.date} {w.time_slot.value}: {w.participant_count}/{w.total_participants} available"
        for w in request.windows
    )
    courses_list = "\n".join(
        f"- {c.name}: {c.address}, Price: {coerce_budget(c.price_tier).symbol}, "
        f"Holes: {getattr(c.holes_available, 'value', c.holes_available)}"
        for c in request.courses
    )
    envelope = request.envelope

    return f"""Generate 2-3 plan options for a group golf outing.

Group constraints:
- Best time windows:
{windows_list}
- Budget: {envelope.budget.symbol} ({envelope.budget_description} per person)
- Max drive from {request.location or "the group's area"}: {envelope.max_drive_minutes} minutes
- Holes: {envelope.holes_preference.value}
- Group size: {request.participant_count} people

Available courses:
{courses_list}

Return a JSON array of 2-3 plan cards. Each card must have this exact structure:
{{
  "title": "Saturday Morning at [Course Name]",
  "course_name": "[exact course name from list]",
  "course_address": "[exact address from list]",
  "time_window": {{"start": "2024-01-20T08:00:00Z", "end": "2024-01-20T12:00:00Z"}},
  "estimated_cost": "$XX per person",
  "drive_time": "XX min from center",
  "rationale": ["reason 1", "reason 2", "reason 3"],
  "fit_score": 85
}}

Use the actual dates from the time windows provided.
Vary the options: one budget-friendly, one best-fit, one premium if courses allow.
Output valid JSON only, no markdown, no explanation."""


# ── Client ──

class PlanWriter:
    """Thin async client for the chat-completions gateway."""

    def __init__(
        self,
        api_key: str,
        url: str,
        model: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.url = url
        self.model = model
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls) -> "PlanWriter":
        return cls(
            api_key=settings.AI_API_KEY.strip(),
            url=settings.AI_GATEWAY_URL,
            model=settings.AI_MODEL,
            timeout=settings.AI_TIMEOUT_SECONDS,
        )

    async def write_plans(self, request: PlanRequest) -> str:
        """Send the prompt and return the model's raw text reply."""
        if not self.api_key:
            logger.error("AI_API_KEY not configured")
            raise SynthesisUnreachable("AI service not configured")

        prompt = build_prompt(request)
        logger.debug("Plan prompt: %s...", prompt[:500])

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    self.url,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "model": self.model,
                        "messages": [
                            {"role": "system", "content": SYSTEM_PROMPT},
                            {"role": "user", "content": prompt},
                        ],
                    },
                )
        except httpx.TimeoutException as e:
            logger.error(f"Plan writer timed out after {self.timeout}s")
            raise SynthesisUnreachable("AI service timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"Plan writer unreachable: {e}")
            raise SynthesisUnreachable("AI service unreachable") from e

        if resp.status_code == 429:
            raise SynthesisRateLimited("Rate limit exceeded, please try again later", 429)
        if resp.status_code == 402:
            raise SynthesisQuotaExhausted("AI credits depleted", 402)
        if not resp.is_success:
            logger.error("AI API error: %s %s", resp.status_code, resp.text[:500])
            raise SynthesisUnreachable("AI service error", resp.status_code)

        try:
            content = resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise MalformedSynthesisOutput("AI response missing message content") from e

        if not isinstance(content, str) or not content.strip():
            raise MalformedSynthesisOutput("AI response was empty")

        logger.info("AI response: %s", content[:500])
        return content


def get_plan_writer() -> PlanWriter:
    """FastAPI dependency; overridden in tests."""
    return PlanWriter.from_settings()
