"""
AI capability boundary for lab content.
Every call returns a CapabilityResult; nothing here raises on upstream failure.
"""

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Protocol

from app.ai.gemini_core import GeminiClient, GeminiUnavailable
from app.ai.lab_templates import LEVEL_DESCRIPTIONS
from app.ai.prompts import PROMPTS

logger = logging.getLogger(__name__)


class GenerationError(str, Enum):
    UNAVAILABLE = "unavailable"
    TIMEOUT = "timeout"
    UNPARSABLE = "unparsable"
    INCOMPLETE = "incomplete"
    UPSTREAM = "upstream"


@dataclass
class CapabilityResult:
    value: Optional[Dict[str, Any]] = None
    error: Optional[GenerationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.value is not None

    @classmethod
    def success(cls, value: Dict[str, Any]) -> "CapabilityResult":
        return cls(value=value)

    @classmethod
    def failure(cls, error: GenerationError) -> "CapabilityResult":
        return cls(error=error)


class LabCapability(Protocol):
    async def generate_lab_content(self, prompt: str, subject: str, level: int) -> CapabilityResult: ...

    async def interpret_action(self, action: str, equipment: Optional[Dict[str, Any]], target: str,
                               game_state: Dict[str, Any], simulation_context: Dict[str, Any]) -> CapabilityResult: ...

    async def interpret_mixing(self, chemical_a: Dict[str, Any], chemical_b: Dict[str, Any],
                               game_state: Dict[str, Any], simulation_context: Dict[str, Any]) -> CapabilityResult: ...

    async def generate_hint(self, game_state: Dict[str, Any], struggling_area: Optional[str],
                            simulation_context: Dict[str, Any]) -> CapabilityResult: ...


# ==================== PARSING ====================

def strip_code_fences(text: str) -> str:
    """Remove a leading ```json / ``` fence and a trailing ``` fence"""
    clean = text.strip()
    if clean.startswith("```json"):
        clean = re.sub(r"^```json\s*", "", clean)
        clean = re.sub(r"```$", "", clean)
    elif clean.startswith("```"):
        clean = re.sub(r"^```\s*", "", clean)
        clean = re.sub(r"```$", "", clean)
    return clean.strip()


def parse_json_object(text: str) -> CapabilityResult:
    clean = strip_code_fences(text)
    try:
        data = json.loads(clean)
    except json.JSONDecodeError:
        # Model sometimes wraps the object in prose
        match = re.search(r"\{.*\}", clean, re.DOTALL)
        if not match:
            return CapabilityResult.failure(GenerationError.UNPARSABLE)
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            return CapabilityResult.failure(GenerationError.UNPARSABLE)

    if not isinstance(data, dict):
        return CapabilityResult.failure(GenerationError.UNPARSABLE)
    return CapabilityResult.success(data)


def _dump(data: Any) -> str:
    return json.dumps(data, indent=2, default=str)


# ==================== IMPLEMENTATIONS ====================

class GeminiLabCapability:
    """LabCapability backed by Gemini"""

    def __init__(self, client: GeminiClient):
        self.client = client

    async def _ask(self, prompt: str) -> CapabilityResult:
        try:
            raw_output = await self.client.generate(prompt)
        except GeminiUnavailable as e:
            logger.warning(f"⚠️ Gemini unavailable: {e}")
            return CapabilityResult.failure(GenerationError.UNAVAILABLE)
        except Exception as e:
            logger.warning(f"⚠️ Gemini request failed: {e}")
            return CapabilityResult.failure(GenerationError.UPSTREAM)

        result = parse_json_object(raw_output)
        if not result.ok:
            logger.warning(f"⚠️ Gemini output was not a JSON object: {raw_output[:200]!r}")
        return result

    async def generate_lab_content(self, prompt, subject, level):
        return await self._ask(PROMPTS["lab"]["standard"].format(
            level=level,
            level_description=LEVEL_DESCRIPTIONS.get(level, LEVEL_DESCRIPTIONS[3]),
            prompt=prompt,
            subject=subject,
        ))

    async def interpret_action(self, action, equipment, target, game_state, simulation_context):
        return await self._ask(PROMPTS["action"]["standard"].format(
            subject=simulation_context.get("subject", "general"),
            level=simulation_context.get("level", 3),
            action=action,
            equipment=(equipment or {}).get("name") or "unknown equipment",
            target=target,
            game_state=_dump(game_state),
        ))

    async def interpret_mixing(self, chemical_a, chemical_b, game_state, simulation_context):
        return await self._ask(PROMPTS["mixing"]["standard"].format(
            subject=simulation_context.get("subject", "general"),
            level=simulation_context.get("level", 3),
            chemical1=chemical_a.get("name"),
            chemical2=chemical_b.get("name"),
            game_state=_dump(game_state),
        ))

    async def generate_hint(self, game_state, struggling_area, simulation_context):
        return await self._ask(PROMPTS["hint"]["standard"].format(
            subject=simulation_context.get("subject", "general"),
            level=simulation_context.get("level", 3),
            title=simulation_context.get("title", ""),
            struggling_area=struggling_area or "not specified",
            game_state=_dump(game_state),
        ))


class OfflineLabCapability:
    """Used when no API key is configured: every call reports UNAVAILABLE"""

    async def generate_lab_content(self, prompt, subject, level):
        return CapabilityResult.failure(GenerationError.UNAVAILABLE)

    async def interpret_action(self, action, equipment, target, game_state, simulation_context):
        return CapabilityResult.failure(GenerationError.UNAVAILABLE)

    async def interpret_mixing(self, chemical_a, chemical_b, game_state, simulation_context):
        return CapabilityResult.failure(GenerationError.UNAVAILABLE)

    async def generate_hint(self, game_state, struggling_area, simulation_context):
        return CapabilityResult.failure(GenerationError.UNAVAILABLE)
