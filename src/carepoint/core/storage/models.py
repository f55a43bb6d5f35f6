"""Data models for the tracker persistence layer.

Free-text fields (notes, names, questionnaire answers) are stored encrypted.
Categorical tracker fields stay in plain columns so assessments can read
them without decrypting every row.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# Allowed categorical values (validated at the repository boundary)
# ---------------------------------------------------------------------------

MOOD_LEVELS = ("very_sad", "sad", "neutral", "happy", "very_happy")
ENERGY_LEVELS = ("very_low", "low", "moderate", "high", "very_high")
STRESS_LEVELS = ENERGY_LEVELS
ANXIETY_LEVELS = ("none", "mild", "moderate", "high", "severe")
MOOD_SLEEP_QUALITY = ("very_poor", "poor", "fair", "good", "excellent")
SOCIAL_INTERACTION = ("none", "minimal", "moderate", "active", "very_active")
PHYSICAL_ACTIVITY = ("none", "light", "moderate", "intense", "very_intense")
MOOD_SYMPTOMS = (
    "headache", "fatigue", "irritability", "difficulty_concentrating",
    "appetite_changes", "mood_swings", "crying_spells", "withdrawal",
    "restlessness", "hopelessness", "guilt", "worthlessness",
)
MOOD_TRIGGERS = (
    "work_stress", "relationship_issues", "financial_concerns", "health_issues",
    "family_problems", "social_situations", "weather", "hormonal_changes",
    "lack_of_sleep", "poor_diet", "alcohol", "medication_changes",
)
COPING_STRATEGIES = (
    "exercise", "meditation", "deep_breathing", "journaling", "music",
    "talking_to_friends", "professional_help", "hobbies", "nature", "reading",
    "creative_activities", "relaxation_techniques",
)
MOOD_NOTES_MAX = 1000

SLEEP_QUALITY = ("poor", "fair", "good", "excellent")
CAFFEINE_INTAKE = ("none", "low", "moderate", "high")
SLEEP_STRESS_LEVELS = ("low", "moderate", "high")
MAX_TIME_TO_FALL_ASLEEP = 300
SLEEP_NOTES_MAX = 500

MEDICINE_TYPES = ("tablet", "capsule", "syrup", "injection", "drops", "cream", "inhaler", "other")
MEDICINE_SIDE_EFFECTS = (
    "nausea", "dizziness", "headache", "drowsiness", "stomach_upset",
    "rash", "fatigue", "insomnia", "dry_mouth", "constipation",
    "diarrhea", "loss_of_appetite", "weight_gain", "weight_loss", "other",
)
DOSE_STATUSES = ("due", "taken", "missed", "skipped")

CHILD_GENDERS = ("male", "female")


@dataclass
class MoodEntry:
    """One daily mood check-in."""

    id: str
    entry_date: str  # ISO date
    overall_mood: str
    energy_level: str
    stress_level: str
    anxiety_level: str
    sleep_quality: str | None = None
    social_interaction: str | None = None
    physical_activity: str | None = None
    symptoms: list[str] = field(default_factory=list)
    triggers: list[str] = field(default_factory=list)
    coping_strategies: list[str] = field(default_factory=list)
    notes: str = ""  # stored encrypted
    created_at: str = ""


@dataclass
class SleepEntry:
    """One night of sleep."""

    id: str
    entry_date: str
    sleep_time: str  # HH:MM
    wake_time: str  # HH:MM
    sleep_quality: str
    sleep_duration: float | None = None  # hours
    bed_time: str | None = None
    time_to_fall_asleep: int = 0  # minutes
    night_wakeups: int = 0
    caffeine_intake: str = "none"
    screen_time_before_bed: int = 0  # minutes
    exercise_today: bool = False
    stress_level: str = "low"
    notes: str = ""  # stored encrypted
    created_at: str = ""


@dataclass
class DoseTime:
    """A single daily administration time for a medicine."""

    time: str  # HH:MM
    dosage: str = ""
    instructions: str = ""


@dataclass
class Medicine:
    """A prescribed or self-managed medicine course."""

    id: str
    name: str
    medicine_type: str
    start_date: str
    end_date: str
    schedule: list[DoseTime] = field(default_factory=list)
    purpose: str = ""
    prescribed_by: str = ""
    side_effects: list[str] = field(default_factory=list)
    notes: str = ""  # stored encrypted
    is_active: bool = True
    total_duration: int = 0  # days, computed on save
    created_at: str = ""


@dataclass
class DoseLog:
    """One scheduled dose and its outcome."""

    id: str
    medicine_id: str
    scheduled_date: str
    scheduled_time: str
    status: str = "due"
    dosage: str = ""
    taken_at: str | None = None
    actual_dosage: str = ""
    side_effects_experienced: list[str] = field(default_factory=list)
    notes: str = ""  # stored encrypted
    updated_at: str = ""


@dataclass
class VaccineRecord:
    """A scheduled vaccine for one child."""

    id: str
    tracker_id: str
    vaccine_name: str
    due_date: str
    description: str = ""
    age_at_vaccination: str = ""
    is_completed: bool = False
    completed_date: str | None = None
    notes: str = ""  # stored encrypted


@dataclass
class VaccineTracker:
    """A child's vaccination schedule."""

    id: str
    child_name: str  # stored encrypted
    date_of_birth: str
    gender: str
    records: list[VaccineRecord] = field(default_factory=list)
    created_at: str = ""


@dataclass
class PeriodTracker:
    """Menstrual cycle profile (one per data bank)."""

    name: str  # stored encrypted
    age: int
    last_period_date: str
    cycle_length: int = 28
    updated_at: str = ""


@dataclass
class StoredAssessment:
    """A persisted risk assessment (answers and result are encrypted)."""

    id: str
    domain: str
    risk_level: str
    score: int
    max_score: int
    answers: dict[str, Any] = field(default_factory=dict)
    result: dict[str, Any] = field(default_factory=dict)
    created_at: str = ""
