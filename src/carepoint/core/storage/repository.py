"""Tracker repository: CRUD operations for the encrypted data bank.

The repository mediates between tracker records (MoodEntry, Medicine, etc.)
and the SQLite database, validating categorical fields at the boundary and
using FieldEncryptor for free text.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Iterable
from datetime import date, datetime, timedelta, timezone
from typing import Any

from carepoint.core.storage.database import TrackerDatabase
from carepoint.core.storage.encryption import FieldEncryptor
from carepoint.core.storage.models import (
    ANXIETY_LEVELS,
    CAFFEINE_INTAKE,
    CHILD_GENDERS,
    COPING_STRATEGIES,
    DOSE_STATUSES,
    ENERGY_LEVELS,
    MAX_TIME_TO_FALL_ASLEEP,
    MEDICINE_SIDE_EFFECTS,
    MEDICINE_TYPES,
    MOOD_LEVELS,
    MOOD_NOTES_MAX,
    MOOD_SLEEP_QUALITY,
    MOOD_SYMPTOMS,
    MOOD_TRIGGERS,
    PHYSICAL_ACTIVITY,
    SLEEP_NOTES_MAX,
    SLEEP_QUALITY,
    SLEEP_STRESS_LEVELS,
    SOCIAL_INTERACTION,
    STRESS_LEVELS,
    DoseLog,
    DoseTime,
    Medicine,
    MoodEntry,
    PeriodTracker,
    SleepEntry,
    StoredAssessment,
    VaccineRecord,
    VaccineTracker,
)

logger = logging.getLogger(__name__)

PERIOD_TRACKER_ID = "default"
AGE_RANGE = (10, 60)
CYCLE_LENGTH_RANGE = (21, 35)
MAX_PERIOD_AGE_DAYS = 365


class RepositoryError(Exception):
    """Raised when repository operations fail or input is invalid."""


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def _check_choice(name: str, value: Any, allowed: Iterable[str], *, optional: bool = False) -> None:
    if value is None and optional:
        return
    allowed = tuple(allowed)
    if value not in allowed:
        raise RepositoryError(f"Invalid {name}: {value!r}. Valid: {', '.join(allowed)}")


def _check_choices(name: str, values: Iterable[str], allowed: Iterable[str]) -> None:
    allowed = tuple(allowed)
    unknown = [v for v in values if v not in allowed]
    if unknown:
        raise RepositoryError(f"Invalid {name}: {unknown!r}. Valid: {', '.join(allowed)}")


def _parse_day(name: str, value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError as exc:
        raise RepositoryError(f"Invalid {name}: {value!r} (expected YYYY-MM-DD)") from exc


def _normalize_time(name: str, value: Any) -> str:
    """Return ``HH:MM`` with zero padding so times sort lexically."""
    try:
        hour_text, minute_text = str(value).strip().split(":")[:2]
        hour, minute = int(hour_text), int(minute_text)
    except (ValueError, AttributeError) as exc:
        raise RepositoryError(f"Invalid {name}: {value!r} (expected HH:MM)") from exc
    if not (0 <= hour < 24 and 0 <= minute < 60):
        raise RepositoryError(f"Invalid {name}: {value!r} (expected HH:MM)")
    return f"{hour:02d}:{minute:02d}"


def _check_notes(notes: str, limit: int) -> None:
    if notes and len(notes) > limit:
        raise RepositoryError(f"Notes must be at most {limit} characters")


def _json_list(raw: str | None) -> list:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return []
    return value if isinstance(value, list) else []


class TrackerRepository:
    """CRUD repository for tracker records and assessment history.

    Usage::

        db = TrackerDatabase(":memory:")
        db.initialize()
        encryptor = FieldEncryptor(key="...")
        repo = TrackerRepository(db, encryptor)

        entry_id = repo.add_mood_entry(entry)
        recent = repo.get_mood_entries(limit=14)
    """

    def __init__(self, database: TrackerDatabase, encryptor: FieldEncryptor) -> None:
        self._db = database
        self._enc = encryptor

    @staticmethod
    def _new_id() -> str:
        return str(uuid.uuid4())

    @staticmethod
    def _now_iso() -> str:
        return datetime.now(timezone.utc).isoformat()

    # ------------------------------------------------------------------
    # Mood entries
    # ------------------------------------------------------------------

    def add_mood_entry(self, entry: MoodEntry) -> str:
        """Validate and persist a mood check-in.

        Returns:
            The entry ID.

        Raises:
            RepositoryError: If a categorical field has an unknown value.
        """
        _check_choice("overall_mood", entry.overall_mood, MOOD_LEVELS)
        _check_choice("energy_level", entry.energy_level, ENERGY_LEVELS)
        _check_choice("stress_level", entry.stress_level, STRESS_LEVELS)
        _check_choice("anxiety_level", entry.anxiety_level, ANXIETY_LEVELS)
        _check_choice("sleep_quality", entry.sleep_quality, MOOD_SLEEP_QUALITY, optional=True)
        _check_choice(
            "social_interaction", entry.social_interaction, SOCIAL_INTERACTION, optional=True
        )
        _check_choice(
            "physical_activity", entry.physical_activity, PHYSICAL_ACTIVITY, optional=True
        )
        _check_choices("symptoms", entry.symptoms, MOOD_SYMPTOMS)
        _check_choices("triggers", entry.triggers, MOOD_TRIGGERS)
        _check_choices("coping_strategies", entry.coping_strategies, COPING_STRATEGIES)
        _check_notes(entry.notes, MOOD_NOTES_MAX)

        entry_id = entry.id or self._new_id()
        entry_date = _parse_day("entry_date", entry.entry_date or date.today())
        conn = self._db.connection
        conn.execute(
            """INSERT INTO mood_entries (
                id, entry_date, overall_mood, energy_level, stress_level, anxiety_level,
                sleep_quality, social_interaction, physical_activity,
                symptoms_json, triggers_json, coping_json, notes_enc, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                entry_id,
                entry_date.isoformat(),
                entry.overall_mood,
                entry.energy_level,
                entry.stress_level,
                entry.anxiety_level,
                entry.sleep_quality,
                entry.social_interaction,
                entry.physical_activity,
                json.dumps(entry.symptoms),
                json.dumps(entry.triggers),
                json.dumps(entry.coping_strategies),
                self._enc.encrypt_text(entry.notes),
                entry.created_at or self._now_iso(),
            ),
        )
        conn.commit()
        logger.info("Saved mood entry %s for %s", entry_id, entry_date)
        return entry_id

    def get_mood_entries(self, *, limit: int = 14) -> list[MoodEntry]:
        """Return the most recent mood entries, newest first."""
        rows = self._db.connection.execute(
            "SELECT * FROM mood_entries ORDER BY entry_date DESC, created_at DESC LIMIT ?",
            (limit,),
        ).fetchall()
        return [
            MoodEntry(
                id=row["id"],
                entry_date=row["entry_date"],
                overall_mood=row["overall_mood"],
                energy_level=row["energy_level"],
                stress_level=row["stress_level"],
                anxiety_level=row["anxiety_level"],
                sleep_quality=row["sleep_quality"],
                social_interaction=row["social_interaction"],
                physical_activity=row["physical_activity"],
                symptoms=_json_list(row["symptoms_json"]),
                triggers=_json_list(row["triggers_json"]),
                coping_strategies=_json_list(row["coping_json"]),
                notes=self._enc.decrypt_text(row["notes_enc"]),
                created_at=row["created_at"],
            )
            for row in rows
        ]

    def delete_mood_entry(self, entry_id: str) -> bool:
        """Delete one mood entry. Returns True if it existed."""
        return self._delete_row("mood_entries", entry_id)

    # ------------------------------------------------------------------
    # Sleep entries
    # ------------------------------------------------------------------

    def add_sleep_entry(self, entry: SleepEntry) -> str:
        """Validate and persist one night of sleep.

        ``sleep_duration`` must already be computed by the caller.

        Raises:
            RepositoryError: On unknown categories or out-of-range values.
        """
        _check_choice("sleep_quality", entry.sleep_quality, SLEEP_QUALITY)
        _check_choice("caffeine_intake", entry.caffeine_intake, CAFFEINE_INTAKE)
        _check_choice("stress_level", entry.stress_level, SLEEP_STRESS_LEVELS)
        sleep_time = _normalize_time("sleep_time", entry.sleep_time)
        wake_time = _normalize_time("wake_time", entry.wake_time)
        bed_time = _normalize_time("bed_time", entry.bed_time) if entry.bed_time else None
        if entry.sleep_duration is None or entry.sleep_duration < 0:
            raise RepositoryError("sleep_duration must be a non-negative number of hours")
        if not 0 <= entry.time_to_fall_asleep <= MAX_TIME_TO_FALL_ASLEEP:
            raise RepositoryError(
                f"time_to_fall_asleep must be between 0 and {MAX_TIME_TO_FALL_ASLEEP} minutes"
            )
        if entry.night_wakeups < 0:
            raise RepositoryError("night_wakeups must not be negative")
        _check_notes(entry.notes, SLEEP_NOTES_MAX)

        entry_id = entry.id or self._new_id()
        entry_date = _parse_day("entry_date", entry.entry_date or date.today())
        conn = self._db.connection
        conn.execute(
            """INSERT INTO sleep_entries (
                id, entry_date, bed_time, sleep_time, wake_time, sleep_quality,
                sleep_duration, time_to_fall_asleep, night_wakeups, caffeine_intake,
                screen_time_minutes, exercise_today, stress_level, notes_enc, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                entry_id,
                entry_date.isoformat(),
                bed_time,
                sleep_time,
                wake_time,
                entry.sleep_quality,
                entry.sleep_duration,
                entry.time_to_fall_asleep,
                entry.night_wakeups,
                entry.caffeine_intake,
                entry.screen_time_before_bed,
                int(entry.exercise_today),
                entry.stress_level,
                self._enc.encrypt_text(entry.notes),
                entry.created_at or self._now_iso(),
            ),
        )
        conn.commit()
        logger.info("Saved sleep entry %s for %s", entry_id, entry_date)
        return entry_id

    def get_sleep_entries(self, *, limit: int = 7) -> list[SleepEntry]:
        """Return the most recent sleep entries, newest first."""
        rows = self._db.connection.execute(
            "SELECT * FROM sleep_entries ORDER BY entry_date DESC, created_at DESC LIMIT ?",
            (limit,),
        ).fetchall()
        return [
            SleepEntry(
                id=row["id"],
                entry_date=row["entry_date"],
                bed_time=row["bed_time"],
                sleep_time=row["sleep_time"],
                wake_time=row["wake_time"],
                sleep_quality=row["sleep_quality"],
                sleep_duration=row["sleep_duration"],
                time_to_fall_asleep=row["time_to_fall_asleep"],
                night_wakeups=row["night_wakeups"],
                caffeine_intake=row["caffeine_intake"],
                screen_time_before_bed=row["screen_time_minutes"],
                exercise_today=bool(row["exercise_today"]),
                stress_level=row["stress_level"],
                notes=self._enc.decrypt_text(row["notes_enc"]),
                created_at=row["created_at"],
            )
            for row in rows
        ]

    def delete_sleep_entry(self, entry_id: str) -> bool:
        """Delete one sleep entry. Returns True if it existed."""
        return self._delete_row("sleep_entries", entry_id)

    # ------------------------------------------------------------------
    # Medicines and dose logs
    # ------------------------------------------------------------------

    def add_medicine(self, medicine: Medicine) -> str:
        """Persist a medicine course and generate its dose logs.

        One ``due`` log is created per schedule time for every day from
        ``start_date`` to ``end_date`` inclusive.

        Returns:
            The medicine ID.

        Raises:
            RepositoryError: On invalid type, schedule, or date range.
        """
        if not medicine.name or not medicine.name.strip():
            raise RepositoryError("Medicine name is required")
        _check_choice("medicine_type", medicine.medicine_type, MEDICINE_TYPES)
        _check_choices("side_effects", medicine.side_effects, MEDICINE_SIDE_EFFECTS)
        if not medicine.schedule:
            raise RepositoryError("Medicine schedule must contain at least one dose time")
        start = _parse_day("start_date", medicine.start_date)
        end = _parse_day("end_date", medicine.end_date)
        if end < start:
            raise RepositoryError("end_date must not be before start_date")

        schedule = [
            DoseTime(
                time=_normalize_time("schedule time", dose.time),
                dosage=dose.dosage,
                instructions=dose.instructions,
            )
            for dose in medicine.schedule
        ]
        medicine_id = medicine.id or self._new_id()
        total_days = (end - start).days + 1
        now = self._now_iso()

        conn = self._db.connection
        conn.execute(
            """INSERT INTO medicines (
                id, name, medicine_type, purpose, start_date, end_date, total_duration,
                schedule_json, prescribed_by, side_effects_json, notes_enc, is_active, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                medicine_id,
                medicine.name.strip(),
                medicine.medicine_type,
                medicine.purpose,
                start.isoformat(),
                end.isoformat(),
                total_days,
                json.dumps([vars(d) for d in schedule]),
                medicine.prescribed_by,
                json.dumps(medicine.side_effects),
                self._enc.encrypt_text(medicine.notes),
                int(medicine.is_active),
                medicine.created_at or now,
            ),
        )

        log_rows = []
        for offset in range(total_days):
            day = (start + timedelta(days=offset)).isoformat()
            for dose in schedule:
                log_rows.append((self._new_id(), medicine_id, day, dose.time, dose.dosage, now))
        conn.executemany(
            """INSERT INTO dose_logs
               (id, medicine_id, scheduled_date, scheduled_time, dosage, status, updated_at)
               VALUES (?, ?, ?, ?, ?, 'due', ?)""",
            log_rows,
        )
        conn.commit()
        logger.info(
            "Saved medicine %s (%d days, %d dose logs)", medicine_id, total_days, len(log_rows)
        )
        return medicine_id

    def _row_to_medicine(self, row: Any) -> Medicine:
        return Medicine(
            id=row["id"],
            name=row["name"],
            medicine_type=row["medicine_type"],
            purpose=row["purpose"] or "",
            start_date=row["start_date"],
            end_date=row["end_date"],
            total_duration=row["total_duration"],
            schedule=[DoseTime(**item) for item in _json_list(row["schedule_json"])],
            prescribed_by=row["prescribed_by"] or "",
            side_effects=_json_list(row["side_effects_json"]),
            notes=self._enc.decrypt_text(row["notes_enc"]),
            is_active=bool(row["is_active"]),
            created_at=row["created_at"],
        )

    def get_medicine(self, medicine_id: str) -> Medicine | None:
        row = self._db.connection.execute(
            "SELECT * FROM medicines WHERE id = ?", (medicine_id,)
        ).fetchone()
        return self._row_to_medicine(row) if row is not None else None

    def get_medicines(self, *, active_only: bool = False) -> list[Medicine]:
        """List medicines, oldest course first."""
        query = "SELECT * FROM medicines"
        if active_only:
            query += " WHERE is_active = 1"
        query += " ORDER BY start_date, created_at"
        rows = self._db.connection.execute(query).fetchall()
        return [self._row_to_medicine(row) for row in rows]

    def deactivate_medicine(self, medicine_id: str) -> bool:
        """Stop tracking a medicine without deleting its history."""
        conn = self._db.connection
        cursor = conn.execute(
            "UPDATE medicines SET is_active = 0 WHERE id = ?", (medicine_id,)
        )
        conn.commit()
        return cursor.rowcount > 0

    def _row_to_dose_log(self, row: Any) -> DoseLog:
        return DoseLog(
            id=row["id"],
            medicine_id=row["medicine_id"],
            scheduled_date=row["scheduled_date"],
            scheduled_time=row["scheduled_time"],
            dosage=row["dosage"] or "",
            status=row["status"],
            taken_at=row["taken_at"],
            actual_dosage=row["actual_dosage"] or "",
            side_effects_experienced=_json_list(row["side_effects_json"]),
            notes=self._enc.decrypt_text(row["notes_enc"]),
            updated_at=row["updated_at"],
        )

    def get_dose_log(self, log_id: str) -> DoseLog | None:
        row = self._db.connection.execute(
            "SELECT * FROM dose_logs WHERE id = ?", (log_id,)
        ).fetchone()
        return self._row_to_dose_log(row) if row is not None else None

    def get_dose_logs(
        self,
        *,
        medicine_id: str | None = None,
        since: str | None = None,
        until: str | None = None,
        status: str | None = None,
    ) -> list[DoseLog]:
        """Query dose logs in schedule order.

        Args:
            medicine_id: Restrict to one medicine.
            since: Inclusive ISO date lower bound on ``scheduled_date``.
            until: Inclusive ISO date upper bound on ``scheduled_date``.
            status: Restrict to one dose status.
        """
        conditions: list[str] = []
        params: list[Any] = []
        if medicine_id:
            conditions.append("medicine_id = ?")
            params.append(medicine_id)
        if since:
            conditions.append("scheduled_date >= ?")
            params.append(since)
        if until:
            conditions.append("scheduled_date <= ?")
            params.append(until)
        if status:
            _check_choice("status", status, DOSE_STATUSES)
            conditions.append("status = ?")
            params.append(status)

        query = "SELECT * FROM dose_logs"
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY scheduled_date, scheduled_time"
        rows = self._db.connection.execute(query, params).fetchall()
        return [self._row_to_dose_log(row) for row in rows]

    def update_dose_status(
        self,
        log_id: str,
        status: str,
        *,
        taken_at: str | None = None,
        actual_dosage: str | None = None,
        side_effects: list[str] | None = None,
        notes: str | None = None,
    ) -> DoseLog:
        """Record the outcome of a scheduled dose.

        Marking a dose ``taken`` without ``taken_at`` stamps the current
        local time.

        Raises:
            RepositoryError: If the log does not exist or a value is invalid.
        """
        _check_choice("status", status, DOSE_STATUSES)
        if side_effects:
            _check_choices("side_effects", side_effects, MEDICINE_SIDE_EFFECTS)
        current = self.get_dose_log(log_id)
        if current is None:
            raise RepositoryError(f"Dose log not found: {log_id}")

        if status == "taken":
            taken_at = taken_at or datetime.now().replace(microsecond=0).isoformat()
        else:
            taken_at = None

        conn = self._db.connection
        conn.execute(
            """UPDATE dose_logs SET
                   status = ?, taken_at = ?, actual_dosage = ?,
                   side_effects_json = ?, notes_enc = ?, updated_at = ?
               WHERE id = ?""",
            (
                status,
                taken_at,
                actual_dosage if actual_dosage is not None else current.actual_dosage,
                json.dumps(side_effects if side_effects is not None
                           else current.side_effects_experienced),
                self._enc.encrypt_text(notes if notes is not None else current.notes),
                self._now_iso(),
                log_id,
            ),
        )
        conn.commit()
        logger.info("Dose %s marked %s", log_id, status)
        updated = self.get_dose_log(log_id)
        assert updated is not None  # for type checkers
        return updated

    def mark_overdue_doses_missed(
        self,
        now: datetime,
        *,
        grace: timedelta = timedelta(hours=2),
    ) -> int:
        """Move ``due`` doses scheduled before ``now - grace`` to ``missed``.

        Meant to run periodically from outside the scoring path. Only rows
        still ``due`` are touched, so repeated runs are idempotent.

        Args:
            now: Current local time (naive, same clock as the schedule).
            grace: How long after the scheduled time a dose stays ``due``.

        Returns:
            Number of doses marked missed.
        """
        cutoff = now - grace
        cutoff_key = cutoff.strftime("%Y-%m-%d %H:%M")
        conn = self._db.connection
        rows = conn.execute(
            """SELECT id, notes_enc FROM dose_logs
               WHERE status = 'due' AND (scheduled_date || ' ' || scheduled_time) <= ?""",
            (cutoff_key,),
        ).fetchall()
        if not rows:
            return 0

        stamp = now.strftime("%Y-%m-%d %H:%M")
        updated_at = self._now_iso()
        for row in rows:
            existing = self._enc.decrypt_text(row["notes_enc"])
            note = f"Auto-marked as missed at {stamp}"
            conn.execute(
                "UPDATE dose_logs SET status = 'missed', notes_enc = ?, updated_at = ? "
                "WHERE id = ? AND status = 'due'",
                (
                    self._enc.encrypt_text(f"{existing}\n{note}" if existing else note),
                    updated_at,
                    row["id"],
                ),
            )
        conn.commit()
        logger.info("Marked %d overdue doses as missed (cutoff %s)", len(rows), cutoff_key)
        return len(rows)

    # ------------------------------------------------------------------
    # Vaccine trackers
    # ------------------------------------------------------------------

    def create_vaccine_tracker(self, tracker: VaccineTracker, *, today: date | None = None) -> str:
        """Persist a child's tracker together with its scheduled vaccine records.

        Raises:
            RepositoryError: On a missing name, unknown gender, or a future birth date.
        """
        if not tracker.child_name or not tracker.child_name.strip():
            raise RepositoryError("Child name is required")
        _check_choice("gender", tracker.gender, CHILD_GENDERS)
        born = _parse_day("date_of_birth", tracker.date_of_birth)
        if born > (today or date.today()):
            raise RepositoryError("date_of_birth must not be in the future")

        tracker_id = tracker.id or self._new_id()
        conn = self._db.connection
        conn.execute(
            """INSERT INTO vaccine_trackers (id, child_name_enc, date_of_birth, gender, created_at)
               VALUES (?, ?, ?, ?, ?)""",
            (
                tracker_id,
                self._enc.encrypt_text(tracker.child_name.strip()),
                born.isoformat(),
                tracker.gender,
                tracker.created_at or self._now_iso(),
            ),
        )
        conn.executemany(
            """INSERT INTO vaccine_records
               (id, tracker_id, vaccine_name, description, due_date, age_at_vaccination,
                is_completed, completed_date, notes_enc)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            [
                (
                    record.id or self._new_id(),
                    tracker_id,
                    record.vaccine_name,
                    record.description,
                    _parse_day("due_date", record.due_date).isoformat(),
                    record.age_at_vaccination,
                    int(record.is_completed),
                    record.completed_date,
                    self._enc.encrypt_text(record.notes),
                )
                for record in tracker.records
            ],
        )
        conn.commit()
        logger.info("Created vaccine tracker %s (%d vaccines)", tracker_id, len(tracker.records))
        return tracker_id

    def get_vaccine_records(self, tracker_id: str) -> list[VaccineRecord]:
        rows = self._db.connection.execute(
            "SELECT * FROM vaccine_records WHERE tracker_id = ? ORDER BY due_date, rowid",
            (tracker_id,),
        ).fetchall()
        return [
            VaccineRecord(
                id=row["id"],
                tracker_id=row["tracker_id"],
                vaccine_name=row["vaccine_name"],
                description=row["description"] or "",
                due_date=row["due_date"],
                age_at_vaccination=row["age_at_vaccination"] or "",
                is_completed=bool(row["is_completed"]),
                completed_date=row["completed_date"],
                notes=self._enc.decrypt_text(row["notes_enc"]),
            )
            for row in rows
        ]

    def _row_to_vaccine_tracker(self, row: Any) -> VaccineTracker:
        return VaccineTracker(
            id=row["id"],
            child_name=self._enc.decrypt_text(row["child_name_enc"]),
            date_of_birth=row["date_of_birth"],
            gender=row["gender"],
            records=self.get_vaccine_records(row["id"]),
            created_at=row["created_at"],
        )

    def get_vaccine_tracker(self, tracker_id: str) -> VaccineTracker | None:
        row = self._db.connection.execute(
            "SELECT * FROM vaccine_trackers WHERE id = ?", (tracker_id,)
        ).fetchone()
        return self._row_to_vaccine_tracker(row) if row is not None else None

    def get_vaccine_trackers(self) -> list[VaccineTracker]:
        rows = self._db.connection.execute(
            "SELECT * FROM vaccine_trackers ORDER BY created_at"
        ).fetchall()
        return [self._row_to_vaccine_tracker(row) for row in rows]

    def set_vaccine_completed(
        self,
        tracker_id: str,
        record_id: str,
        completed: bool,
        *,
        completed_date: str | None = None,
        notes: str | None = None,
    ) -> VaccineRecord:
        """Mark a scheduled vaccine as given (or undo it).

        Raises:
            RepositoryError: If the record does not belong to the tracker.
        """
        conn = self._db.connection
        row = conn.execute(
            "SELECT * FROM vaccine_records WHERE id = ? AND tracker_id = ?",
            (record_id, tracker_id),
        ).fetchone()
        if row is None:
            raise RepositoryError(f"Vaccine record not found: {record_id}")

        if completed:
            given = _parse_day("completed_date", completed_date or date.today()).isoformat()
        else:
            given = None
        notes_enc = self._enc.encrypt_text(notes) if notes is not None else row["notes_enc"]
        conn.execute(
            "UPDATE vaccine_records SET is_completed = ?, completed_date = ?, notes_enc = ? "
            "WHERE id = ?",
            (int(completed), given, notes_enc, record_id),
        )
        conn.commit()
        logger.info("Vaccine record %s completed=%s", record_id, completed)
        return next(r for r in self.get_vaccine_records(tracker_id) if r.id == record_id)

    def delete_vaccine_tracker(self, tracker_id: str) -> bool:
        conn = self._db.connection
        conn.execute("DELETE FROM vaccine_records WHERE tracker_id = ?", (tracker_id,))
        return self._delete_row("vaccine_trackers", tracker_id)

    # ------------------------------------------------------------------
    # Period tracker
    # ------------------------------------------------------------------

    @staticmethod
    def _check_last_period(last_period: date, today: date) -> None:
        if last_period > today:
            raise RepositoryError("Last period date cannot be in the future")
        if (today - last_period).days > MAX_PERIOD_AGE_DAYS:
            raise RepositoryError("Last period date must be within the past year")

    def save_period_tracker(
        self, tracker: PeriodTracker, *, today: date | None = None
    ) -> PeriodTracker:
        """Create or replace the cycle profile.

        Raises:
            RepositoryError: If age, cycle length, or last period date is out of range.
        """
        today = today or date.today()
        if not tracker.name or not tracker.name.strip():
            raise RepositoryError("Name is required")
        if not AGE_RANGE[0] <= tracker.age <= AGE_RANGE[1]:
            raise RepositoryError(f"Age must be between {AGE_RANGE[0]} and {AGE_RANGE[1]}")
        if not CYCLE_LENGTH_RANGE[0] <= tracker.cycle_length <= CYCLE_LENGTH_RANGE[1]:
            raise RepositoryError(
                f"Cycle length must be between {CYCLE_LENGTH_RANGE[0]} "
                f"and {CYCLE_LENGTH_RANGE[1]} days"
            )
        last_period = _parse_day("last_period_date", tracker.last_period_date)
        self._check_last_period(last_period, today)

        updated_at = self._now_iso()
        conn = self._db.connection
        conn.execute(
            """INSERT INTO period_trackers (id, name_enc, age, last_period_date, cycle_length, updated_at)
               VALUES (?, ?, ?, ?, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                   name_enc = excluded.name_enc,
                   age = excluded.age,
                   last_period_date = excluded.last_period_date,
                   cycle_length = excluded.cycle_length,
                   updated_at = excluded.updated_at""",
            (
                PERIOD_TRACKER_ID,
                self._enc.encrypt_text(tracker.name.strip()),
                tracker.age,
                last_period.isoformat(),
                tracker.cycle_length,
                updated_at,
            ),
        )
        conn.commit()
        logger.info("Saved period tracker (cycle length %d)", tracker.cycle_length)
        return PeriodTracker(
            name=tracker.name.strip(),
            age=tracker.age,
            last_period_date=last_period.isoformat(),
            cycle_length=tracker.cycle_length,
            updated_at=updated_at,
        )

    def get_period_tracker(self) -> PeriodTracker | None:
        row = self._db.connection.execute(
            "SELECT * FROM period_trackers WHERE id = ?", (PERIOD_TRACKER_ID,)
        ).fetchone()
        if row is None:
            return None
        return PeriodTracker(
            name=self._enc.decrypt_text(row["name_enc"]),
            age=row["age"],
            last_period_date=row["last_period_date"],
            cycle_length=row["cycle_length"],
            updated_at=row["updated_at"],
        )

    def mark_period_started(
        self, start_date: str | None = None, *, today: date | None = None
    ) -> PeriodTracker:
        """Record that a new period started (defaults to today).

        Raises:
            RepositoryError: If no cycle profile exists or the date is invalid.
        """
        today = today or date.today()
        tracker = self.get_period_tracker()
        if tracker is None:
            raise RepositoryError("Period tracker has not been set up")
        started = _parse_day("start_date", start_date or today)
        self._check_last_period(started, today)

        conn = self._db.connection
        updated_at = self._now_iso()
        conn.execute(
            "UPDATE period_trackers SET last_period_date = ?, updated_at = ? WHERE id = ?",
            (started.isoformat(), updated_at, PERIOD_TRACKER_ID),
        )
        conn.commit()
        tracker.last_period_date = started.isoformat()
        tracker.updated_at = updated_at
        return tracker

    # ------------------------------------------------------------------
    # Assessment history
    # ------------------------------------------------------------------

    def save_assessment(self, assessment: StoredAssessment) -> str:
        """Persist an assessment with encrypted answers and result."""
        assessment_id = assessment.id or self._new_id()
        conn = self._db.connection
        conn.execute(
            """INSERT INTO assessments
               (id, domain, risk_level, score, max_score, answers_enc, result_enc, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                assessment_id,
                assessment.domain,
                assessment.risk_level,
                assessment.score,
                assessment.max_score,
                self._enc.encrypt(assessment.answers),
                self._enc.encrypt(assessment.result),
                assessment.created_at or self._now_iso(),
            ),
        )
        conn.commit()
        logger.info("Saved %s assessment %s", assessment.domain, assessment_id)
        return assessment_id

    def get_assessments(
        self, *, domain: str | None = None, limit: int = 20
    ) -> list[StoredAssessment]:
        """Return stored assessments, newest first."""
        query = "SELECT * FROM assessments"
        params: list[Any] = []
        if domain:
            query += " WHERE domain = ?"
            params.append(domain)
        query += " ORDER BY created_at DESC LIMIT ?"
        params.append(limit)
        rows = self._db.connection.execute(query, params).fetchall()
        return [
            StoredAssessment(
                id=row["id"],
                domain=row["domain"],
                risk_level=row["risk_level"],
                score=row["score"],
                max_score=row["max_score"],
                answers=self._enc.decrypt(row["answers_enc"]) or {},
                result=self._enc.decrypt(row["result_enc"]) or {},
                created_at=row["created_at"],
            )
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Counts and deletion
    # ------------------------------------------------------------------

    _TRACKER_TABLES = (
        "dose_logs",
        "medicines",
        "vaccine_records",
        "vaccine_trackers",
        "mood_entries",
        "sleep_entries",
        "period_trackers",
        "assessments",
    )

    def count_records(self) -> dict[str, int]:
        """Row counts per tracker table."""
        conn = self._db.connection
        return {
            table: conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
            for table in self._TRACKER_TABLES
        }

    def delete_all_data(self) -> int:
        """Delete ALL tracker data (the audit log is kept).

        Returns:
            Total number of rows deleted.
        """
        counts = self.count_records()
        conn = self._db.connection
        # Child tables first (FK references)
        for table in self._TRACKER_TABLES:
            conn.execute(f"DELETE FROM {table}")
        conn.commit()
        total = sum(counts.values())
        logger.warning("Deleted ALL tracker data: %d rows removed", total)
        return total

    def _delete_row(self, table: str, row_id: str) -> bool:
        conn = self._db.connection
        cursor = conn.execute(f"DELETE FROM {table} WHERE id = ?", (row_id,))
        conn.commit()
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Deleted %s row %s", table, row_id)
        return deleted
