"""
Content Generator
Turns a free-text prompt into a complete virtual lab and interprets gamified
actions, falling back to deterministic templates whenever the AI capability fails.
"""

import asyncio
import copy
import logging
from typing import Any, Dict, List, Optional, Tuple

from app.ai import lab_templates as templates
from app.ai.capability import (
    CapabilityResult,
    GeminiLabCapability,
    GenerationError,
    LabCapability,
    OfflineLabCapability,
)
from app.ai.gemini_core import GeminiClient
from app.simulations.config import (
    AI_TIMEOUT_SECONDS,
    GEMINI_API_KEYS,
    GEMINI_API_VERSION,
    GEMINI_MODEL,
)
from app.simulations.models import (
    Difficulty,
    EquipmentCategory,
    GameConfig,
    GeneratedLab,
    HintType,
    SafetyRating,
    Subject,
)

logger = logging.getLogger(__name__)

OFFLINE_MODEL_NAME = "offline-templates"

# ==================== PURE HELPERS ====================

def difficulty_for_level(level: int) -> Difficulty:
    if level <= 2:
        return Difficulty.BEGINNER
    if level <= 4:
        return Difficulty.INTERMEDIATE
    return Difficulty.ADVANCED


def _template_subject(subject: str) -> str:
    """Subjects without their own tables borrow chemistry's"""
    return subject if subject in templates.FALLBACK_LABS else Subject.CHEMISTRY.value


def build_game_config(subject: str, level: int) -> GameConfig:
    return GameConfig(
        objectives=list(templates.GAME_OBJECTIVES[_template_subject(subject)]),
        scoring_criteria=templates.SCORING_WEIGHTS,
        max_score=100 + level * 20,
        time_limit=templates.TIME_LIMITS.get(subject, templates.DEFAULT_TIME_LIMIT),
    )


def _first_match(name: str, table: Dict[str, Any], default: Any) -> Any:
    lowered = name.lower()
    for keyword, value in table.items():
        if keyword in lowered:
            return value
    return default


def equipment_icon(name: str) -> str:
    return _first_match(name, templates.EQUIPMENT_ICONS, "🔬")


def categorize_equipment(name: str) -> str:
    lowered = name.lower()
    for category, keywords in templates.EQUIPMENT_CATEGORIES.items():
        if any(keyword in lowered for keyword in keywords):
            return category
    return EquipmentCategory.TOOLS.value


def chemical_concentration(name: str) -> str:
    lowered = name.lower()
    if "water" in lowered:
        return "Pure"
    if "acid" in lowered or "base" in lowered:
        return "0.1M"
    return "1%"


def chemical_hazard(name: str) -> str:
    lowered = name.lower()
    if any(word in lowered for word in templates.DANGEROUS_WORDS):
        return SafetyRating.DANGEROUS.value
    if any(word in lowered for word in templates.CAUTION_WORDS):
        return SafetyRating.CAUTION.value
    return SafetyRating.SAFE.value


def chemical_color(name: str) -> str:
    return _first_match(name, templates.CHEMICAL_COLORS, "colorless")


def _entry_name(item: Any) -> Optional[str]:
    if isinstance(item, str):
        return item.strip() or None
    if isinstance(item, dict):
        name = item.get("name")
        return str(name).strip() if name else None
    return None


def normalize_equipment(entries: Optional[List[Any]], subject: str) -> List[Dict[str, Any]]:
    """
    Resolve raw equipment entries (strings or partial objects) into full Equipment dicts.
    Empty or missing input yields the subject's default kit.
    """
    normalized = []
    for item in entries or []:
        name = _entry_name(item)
        if not name:
            continue
        index = len(normalized) + 1
        raw = item if isinstance(item, dict) else {}
        category = raw.get("category")
        if category not in EquipmentCategory._value2member_map_:
            category = categorize_equipment(name)
        normalized.append({
            "id": raw.get("id") or f"eq_{index}",
            "name": name,
            "description": raw.get("description") or f"{name} for laboratory experiments",
            "icon": raw.get("icon") or equipment_icon(name),
            "category": category,
        })

    if not normalized:
        return copy.deepcopy(templates.DEFAULT_EQUIPMENT[_template_subject(subject)])
    return normalized


def normalize_chemicals(entries: Optional[List[Any]], subject: str) -> List[Dict[str, Any]]:
    """Same as normalize_equipment for chemicals; only chemistry gets defaults"""
    normalized = []
    for item in entries or []:
        name = _entry_name(item)
        if not name:
            continue
        index = len(normalized) + 1
        raw = item if isinstance(item, dict) else {}
        hazard = raw.get("hazard")
        if hazard not in SafetyRating._value2member_map_:
            hazard = chemical_hazard(name)
        normalized.append({
            "id": raw.get("id") or f"chem_{index}",
            "name": name,
            "concentration": raw.get("concentration") or chemical_concentration(name),
            "hazard": hazard,
            "color": raw.get("color") or chemical_color(name),
            "icon": raw.get("icon") or "🧪",
        })

    if not normalized and subject == Subject.CHEMISTRY.value:
        return copy.deepcopy(templates.DEFAULT_CHEMISTRY_CHEMICALS)
    return normalized


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


def _pick(data: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if data.get(key) not in (None, "", []):
            return data[key]
    return None


def _achievement_list(value: Any) -> List[Dict[str, str]]:
    achievements = []
    for item in value if isinstance(value, list) else []:
        if isinstance(item, dict) and item.get("title"):
            title = str(item["title"])
            achievements.append({"id": str(item.get("id") or title.lower().replace(" ", "_")), "title": title})
        elif isinstance(item, str) and item.strip():
            achievements.append({"id": item.strip().lower().replace(" ", "_"), "title": item.strip()})
    return achievements


def _coerce_safety(value: Any) -> str:
    return value if value in SafetyRating._value2member_map_ else SafetyRating.SAFE.value


# ==================== FALLBACK SELECTION ====================

def select_lab_fallback(prompt: str, subject: str, level: int, error: GenerationError) -> GeneratedLab:
    """Template lab for the requested subject, re-tagged with the request"""
    logger.warning(f"⚠️ Lab generation fell back to template ({error.value}) for {subject}/L{level}")
    template = copy.deepcopy(templates.FALLBACK_LABS[_template_subject(subject)])
    return GeneratedLab(
        prompt=prompt,
        subject=subject,
        level=level,
        game_config=build_game_config(subject, level),
        difficulty=difficulty_for_level(level),
        **template,
    )


def select_action_fallback(action: str, equipment: Optional[Dict[str, Any]], target: str,
                           error: GenerationError) -> Dict[str, Any]:
    equipment_name = (equipment or {}).get("name") or "laboratory equipment"
    if error == GenerationError.UNAVAILABLE:
        source = templates.ACTION_RESULTS.get(action, templates.ACTION_RESULTS["observe"])
    else:
        source = templates.GENERIC_ACTION_RESULT

    result = copy.deepcopy(source)
    result["action_description"] = result["action_description"].format(
        equipment=equipment_name, target=target, action=action
    )
    return result


def select_mixing_fallback(chemical_a: Dict[str, Any], chemical_b: Dict[str, Any], subject: str,
                           error: GenerationError) -> Dict[str, Any]:
    if error != GenerationError.UNAVAILABLE:
        return copy.deepcopy(templates.GENERIC_MIXING_RESULT)

    result = copy.deepcopy(templates.MIXING_RESULTS[_template_subject(subject)])
    names = {"chemical1": chemical_a.get("name"), "chemical2": chemical_b.get("name")}
    result["result"] = result["result"].format(**names)
    result["result_solution"]["name"] = result["result_solution"]["name"].format(**names)
    return result


def select_hint_fallback(game_state: Dict[str, Any], subject: str, error: GenerationError) -> Dict[str, Any]:
    if error != GenerationError.UNAVAILABLE:
        return dict(templates.GENERIC_HINT)

    subject_hints = templates.SUBJECT_HINTS[_template_subject(subject)]
    used = len(game_state.get("hints") or [])
    hint = subject_hints[used % len(subject_hints)]
    return {"text": hint["text"], "type": hint["type"], "specificity": "specific"}


# ==================== GENERATOR ====================

class ContentGenerator:
    """
    Owns the AI capability and every fallback decision.

    Methods never raise on capability failure. Interpretation methods return
    (result, ai_processed) where ai_processed is False when a fallback produced it.
    """

    def __init__(self, capability: LabCapability, model_name: str = OFFLINE_MODEL_NAME,
                 api_version: str = "", timeout: float = AI_TIMEOUT_SECONDS):
        self.capability = capability
        self.model_name = model_name
        self.api_version = api_version
        self.timeout = timeout

    async def _call(self, awaitable) -> CapabilityResult:
        try:
            result = await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"⚠️ AI capability timed out after {self.timeout}s")
            return CapabilityResult.failure(GenerationError.TIMEOUT)
        except Exception as e:
            logger.warning(f"⚠️ AI capability raised: {e}")
            return CapabilityResult.failure(GenerationError.UPSTREAM)

        if not isinstance(result, CapabilityResult):
            return CapabilityResult.failure(GenerationError.UPSTREAM)
        if result.error is None and not isinstance(result.value, dict):
            return CapabilityResult.failure(GenerationError.UNPARSABLE)
        return result

    # ---------- lab content ----------

    async def generate(self, prompt: str, subject: str, level: int) -> GeneratedLab:
        subject = Subject(subject).value
        result = await self._call(self.capability.generate_lab_content(prompt, subject, level))
        if not result.ok:
            return select_lab_fallback(prompt, subject, level, result.error)

        data = result.value
        lab = data.get("virtualLab", data.get("virtual_lab"))
        if not data.get("title") or not isinstance(lab, dict):
            return select_lab_fallback(prompt, subject, level, GenerationError.INCOMPLETE)

        try:
            generated = self._build_lab(data, lab, prompt, subject, level)
        except Exception as e:
            logger.warning(f"⚠️ AI lab content could not be normalized: {e}")
            return select_lab_fallback(prompt, subject, level, GenerationError.INCOMPLETE)

        logger.info(f"✅ Simulation generated: {generated.title!r}")
        return generated

    def _build_lab(self, data, lab, prompt, subject, level) -> GeneratedLab:
        difficulty = data.get("difficulty")
        if difficulty not in Difficulty._value2member_map_:
            difficulty = difficulty_for_level(level)

        duration = data.get("estimatedDuration", data.get("estimated_duration"))
        if not isinstance(duration, int) or isinstance(duration, bool) or duration <= 0:
            duration = 30

        return GeneratedLab(
            title=str(data["title"]),
            description=_pick(data, "description") or "An engaging virtual laboratory experiment.",
            prompt=prompt,
            subject=subject,
            level=level,
            experiment_type=_pick(data, "experimentType", "experiment_type") or "general_experiment",
            virtual_lab={
                "equipment": normalize_equipment(lab.get("equipment"), subject),
                "chemicals": normalize_chemicals(lab.get("chemicals"), subject),
                "procedure": _string_list(lab.get("procedure")) or list(templates.DEFAULT_PROCEDURE),
                "safety_notes": (
                    _string_list(_pick(lab, "safetyNotes", "safety_notes"))
                    or list(templates.DEFAULT_SAFETY_NOTES)
                ),
            },
            game_config=build_game_config(subject, level),
            objectives=_string_list(data.get("objectives")) or ["Learn basic scientific principles"],
            expected_outcome=(
                _pick(data, "expectedOutcome", "expected_outcome") or "Observe scientific phenomena"
            ),
            estimated_duration=duration,
            difficulty=difficulty,
        )

    # ---------- game interpretation ----------

    async def interpret_action(self, action: str, equipment: Optional[Dict[str, Any]], target: str,
                               game_state: Dict[str, Any],
                               simulation_context: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
        result = await self._call(self.capability.interpret_action(
            action, equipment, target, game_state, simulation_context
        ))
        if not result.ok:
            return select_action_fallback(action, equipment, target, result.error), False

        data = result.value
        return {
            "action_description": _pick(data, "actionDescription", "action_description") or f"You performed the {action} action.",
            "scientific_result": _pick(data, "scientificResult", "scientific_result") or "",
            "explanation": data.get("explanation") or "",
            "visual_effect": _pick(data, "visualEffect", "visual_effect") or "default_action",
            "is_correct": bool(data.get("isCorrect", data.get("is_correct", True))),
            "observation": bool(data.get("observation", False)),
            "safety": _coerce_safety(data.get("safety")),
            "achievements": _achievement_list(data.get("achievements")),
            "hints": _string_list(data.get("hints")),
            "next_suggestion": _pick(data, "nextSuggestion", "next_suggestion") or "",
            "experiment_complete": bool(data.get("experimentComplete", data.get("experiment_complete", False))),
        }, True

    async def interpret_mixing(self, chemical_a: Dict[str, Any], chemical_b: Dict[str, Any],
                               game_state: Dict[str, Any],
                               simulation_context: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
        subject = simulation_context.get("subject", Subject.CHEMISTRY.value)
        result = await self._call(self.capability.interpret_mixing(
            chemical_a, chemical_b, game_state, simulation_context
        ))
        if not result.ok:
            return select_mixing_fallback(chemical_a, chemical_b, subject, result.error), False

        data = result.value
        solution = _pick(data, "resultSolution", "result_solution")
        if not isinstance(solution, dict):
            solution = {"name": f"{chemical_a.get('name')}-{chemical_b.get('name')} Solution"}
        return {
            "result": data.get("result") or "The chemicals were mixed.",
            "explanation": data.get("explanation") or "",
            "visual_effect": _pick(data, "visualEffect", "visual_effect") or "gentle_mixing",
            "result_solution": solution,
            "safety": _coerce_safety(data.get("safety")),
            "educational": bool(data.get("educational", True)),
            "next_steps": _string_list(_pick(data, "nextSteps", "next_steps")),
        }, True

    async def generate_hint(self, game_state: Dict[str, Any], struggling_area: Optional[str],
                            simulation_context: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
        subject = simulation_context.get("subject", Subject.CHEMISTRY.value)
        result = await self._call(self.capability.generate_hint(
            game_state, struggling_area, simulation_context
        ))
        if not result.ok or not result.value.get("text"):
            error = result.error or GenerationError.INCOMPLETE
            return select_hint_fallback(game_state, subject, error), False

        data = result.value
        hint_type = data.get("type")
        if hint_type not in HintType._value2member_map_:
            hint_type = HintType.TIP.value
        return {
            "text": str(data["text"]),
            "type": hint_type,
            "specificity": data.get("specificity") or "general",
        }, True


def build_content_generator() -> ContentGenerator:
    """Construct once at startup; offline templates when no key is configured"""
    if not GEMINI_API_KEYS:
        logger.warning("⚠️ No Gemini API key configured, using offline lab templates")
        return ContentGenerator(OfflineLabCapability())

    client = GeminiClient(GEMINI_API_KEYS, GEMINI_MODEL, api_version=GEMINI_API_VERSION)
    logger.info(f"✅ Gemini capability ready ({GEMINI_MODEL}, {len(GEMINI_API_KEYS)} key(s))")
    return ContentGenerator(
        GeminiLabCapability(client),
        model_name=GEMINI_MODEL,
        api_version=GEMINI_API_VERSION,
    )
