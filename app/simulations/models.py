from pydantic import BaseModel, Field, validator
from typing import List, Optional, Dict, Any
from datetime import datetime
from enum import Enum

# ==================== ENUMS ====================

class Subject(str, Enum):
    CHEMISTRY = "chemistry"
    PHYSICS = "physics"
    BIOLOGY = "biology"
    GENERAL = "general"

# Subjects with their own skill track and best score
TRACKED_SUBJECTS = [Subject.CHEMISTRY, Subject.PHYSICS, Subject.BIOLOGY]

class SimulationStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    COMPLETED = "completed"

class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

class EquipmentCategory(str, Enum):
    GLASSWARE = "glassware"
    TOOLS = "tools"
    CHEMICALS = "chemicals"
    INSTRUMENTS = "instruments"

class SafetyRating(str, Enum):
    SAFE = "safe"
    CAUTION = "caution"
    DANGEROUS = "dangerous"

class ActionKind(str, Enum):
    USE_EQUIPMENT = "use_equipment"
    MIX_CHEMICALS = "mix_chemicals"
    OBSERVE = "observe"
    MEASURE = "measure"
    PLACE_ITEM = "place_item"
    REMOVE_ITEM = "remove_item"

class ActionTarget(str, Enum):
    BEAKER = "beaker"
    BURETTE = "burette"
    MEASURING = "measuring"
    OBSERVATION = "observation"
    WORKSPACE = "workspace"
    MIXING = "mixing"

# Targets that are also workspace buckets
WORKSPACE_LOCATIONS = ["beaker", "burette", "measuring", "observation"]

class HintType(str, Enum):
    TIP = "tip"
    ENCOURAGEMENT = "encouragement"
    DIRECTION = "direction"
    SAFETY = "safety"

class Performance(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    NEEDS_IMPROVEMENT = "needs_improvement"

class UserRole(str, Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    PARENT = "parent"
    ADMIN = "admin"

# ==================== LAB CONTENT ====================

class StoredModel(BaseModel):
    """Models written to MongoDB keep enum fields as plain strings (defaults included)"""

    class Config:
        use_enum_values = True


class Equipment(StoredModel):
    id: str
    name: str
    description: str = ""
    icon: str = "🔬"
    category: EquipmentCategory = EquipmentCategory.TOOLS.value

class Chemical(StoredModel):
    id: str
    name: str
    concentration: str = ""
    hazard: SafetyRating = SafetyRating.SAFE.value
    color: str = "colorless"
    icon: str = "🧪"

class VirtualLab(StoredModel):
    equipment: List[Equipment]
    chemicals: List[Chemical] = []
    procedure: List[str]
    safety_notes: List[str]

class ScoringCriteria(StoredModel):
    correct_action: int = Field(10, gt=0)
    observation: int = Field(5, gt=0)
    completion: int = Field(50, gt=0)

class GameConfig(StoredModel):
    objectives: List[str] = []
    scoring_criteria: ScoringCriteria = Field(default_factory=ScoringCriteria)
    max_score: int = 100
    time_limit: Optional[int] = None  # minutes

class GeneratedLab(StoredModel):
    """Content Generator output, identical for AI and fallback paths"""
    title: str
    description: str
    prompt: str
    subject: Subject
    level: int = Field(..., ge=1, le=5)
    experiment_type: str
    virtual_lab: VirtualLab
    game_config: GameConfig
    objectives: List[str] = []
    expected_outcome: str = ""
    estimated_duration: int = 30
    difficulty: Difficulty = Difficulty.INTERMEDIATE.value

# ==================== STATE ====================

class StepObservation(StoredModel):
    step: int
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    observation: str

class SelectedEquipment(StoredModel):
    id: Optional[str] = None
    name: Optional[str] = None
    used_at: datetime = Field(default_factory=datetime.utcnow)
    location: str = "observation"

class MixedSolution(StoredModel):
    id: str
    components: List[str]
    result: Dict[str, Any] = {}
    visual_effect: str = ""
    timestamp: datetime = Field(default_factory=datetime.utcnow)

class GameObservation(StoredModel):
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    action: str
    result: str = ""
    scientific_explanation: str = ""
    visual_effect: str = ""

class HintEntry(StoredModel):
    id: str
    text: str
    type: HintType = HintType.TIP.value
    specificity: str = "general"
    timestamp: datetime = Field(default_factory=datetime.utcnow)

class AchievementEntry(StoredModel):
    id: str
    title: str
    unlocked_at: datetime = Field(default_factory=datetime.utcnow)

class WorkspaceContents(StoredModel):
    beaker: List[Dict[str, Any]] = []
    burette: List[Dict[str, Any]] = []
    measuring: List[Dict[str, Any]] = []
    observation: List[Dict[str, Any]] = []

class GameState(StoredModel):
    current_action: str = ""
    selected_equipment: List[SelectedEquipment] = []
    mixed_solutions: List[MixedSolution] = []
    observations: List[GameObservation] = []
    score: int = 0
    actions_count: int = 0
    hints: List[HintEntry] = []
    achievements: List[AchievementEntry] = []
    workspace_contents: WorkspaceContents = Field(default_factory=WorkspaceContents)

class SimulationState(StoredModel):
    status: SimulationStatus = SimulationStatus.NOT_STARTED.value
    current_step: int = 0
    progress: float = Field(0, ge=0, le=100)
    user_inputs: Dict[str, Any] = {}
    observations: List[StepObservation] = []
    results: Dict[str, Any] = {}
    started_at: Optional[datetime] = None
    last_active_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    game_state: GameState = Field(default_factory=GameState)

class AIGenerationData(StoredModel):
    model: str
    generated_at: datetime = Field(default_factory=datetime.utcnow)
    processing_time_ms: int = 0
    api_version: str = ""

# ==================== REQUEST MODELS ====================

class SimulationGenerate(BaseModel):
    student_id: str
    prompt: str = Field(..., min_length=1, max_length=500)
    subject: Optional[Subject] = None
    level: Optional[int] = Field(None, ge=1, le=5)

    @validator('prompt')
    def validate_prompt(cls, v):
        if not v.strip():
            raise ValueError('Prompt must not be blank')
        return v.strip()

# Keys of the free-form results bag that scoring reads as numbers
RESULT_COUNTERS = ["gameScore", "actionsCompleted", "observationsMade", "hintsUsed", "accuracy"]


def is_result_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def clean_result_counters(results: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Drop null counters so they get backfilled; anything else must be a number"""
    if results is None:
        return None
    cleaned = dict(results)
    for key in RESULT_COUNTERS:
        if key not in cleaned:
            continue
        value = cleaned[key]
        if value is None:
            del cleaned[key]
        elif not is_result_number(value):
            raise ValueError(f"results.{key} must be a number")
    return cleaned

class StatePatch(BaseModel):
    status: Optional[SimulationStatus] = None
    current_step: Optional[int] = Field(None, ge=0)
    progress: Optional[float] = Field(None, ge=0, le=100)
    user_inputs: Optional[Dict[str, Any]] = None
    observations: Optional[List[StepObservation]] = None
    results: Optional[Dict[str, Any]] = None

    @validator('results')
    def validate_results(cls, v):
        return clean_result_counters(v)

class StateUpdate(BaseModel):
    state: StatePatch

class SimulationComplete(BaseModel):
    final_results: Optional[Dict[str, Any]] = None

    @validator('final_results')
    def validate_final_results(cls, v):
        return clean_result_counters(v)

class EquipmentRef(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    category: Optional[str] = None

class GameActionRequest(BaseModel):
    action: ActionKind
    target: ActionTarget
    equipment: Optional[EquipmentRef] = None
    current_game_state: Dict[str, Any] = {}
    context: Dict[str, Any] = {}

class ChemicalRef(BaseModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    concentration: Optional[str] = None
    hazard: Optional[SafetyRating] = None
    color: Optional[str] = None

class MixChemicalsRequest(BaseModel):
    chemical1: ChemicalRef
    chemical2: ChemicalRef
    current_game_state: Dict[str, Any] = {}

class HintRequest(BaseModel):
    current_game_state: Dict[str, Any] = {}
    struggling_area: Optional[str] = None

# ==================== RESPONSE MODELS ====================

class AchievementUnlock(BaseModel):
    id: str
    title: str
    description: str
    icon: str

class LeaderboardEntry(BaseModel):
    rank: int
    student_id: str
    student_name: str
    score: int
    experiments_completed: int
    average_score: int = 0
