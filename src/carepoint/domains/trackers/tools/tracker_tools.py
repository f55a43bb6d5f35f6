"""MCP tools for tracker data entry.

These tools record the day-to-day data the tracker assessments read:
mood check-ins, sleep, medicine courses and doses, child vaccinations,
and the menstrual cycle profile. Data is persisted to the encrypted
tracker data bank.
"""

from __future__ import annotations

import json
import logging
import time
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Any, Callable

from fastmcp import Context, FastMCP

from carepoint.core.storage.models import (
    DoseTime,
    Medicine,
    MoodEntry,
    PeriodTracker,
    SleepEntry,
    VaccineRecord,
    VaccineTracker,
)
from carepoint.core.storage.repository import RepositoryError
from carepoint.domains.trackers.domain_logic.metrics import (
    cycle_status,
    days_between,
    format_child_age,
    parse_date,
    sleep_duration_hours,
)
from carepoint.domains.trackers.domain_logic.vaccine import build_vaccine_schedule

if TYPE_CHECKING:
    from carepoint.core.audit.logger import AuditLogger
    from carepoint.core.storage.repository import TrackerRepository

logger = logging.getLogger(__name__)


def register_tracker_tools(
    mcp: FastMCP,
    repository: TrackerRepository,
    audit_logger: AuditLogger | None = None,
    *,
    missed_dose_grace_hours: int = 2,
) -> None:
    """Register tracker entry tools on the MCP server."""

    def _record(
        tool_name: str,
        tool_input: dict[str, Any],
        write: Callable[[], tuple[dict[str, Any], str | None]],
    ) -> str:
        """Run a write, audit it, and map validation errors to error JSON."""
        start_time = time.monotonic()
        try:
            payload, record_id = write()
        except (RepositoryError, ValueError) as exc:
            if audit_logger is not None:
                audit_logger.log_tool_call(
                    tool_name, tool_input,
                    duration_ms=(time.monotonic() - start_time) * 1000,
                    status="failure",
                    error_type=type(exc).__name__,
                )
            return json.dumps({"status": "error", "message": str(exc)})
        except Exception as exc:
            if audit_logger is not None:
                audit_logger.log_tool_call(
                    tool_name, tool_input,
                    duration_ms=(time.monotonic() - start_time) * 1000,
                    status="failure",
                    error_type=type(exc).__name__,
                )
            raise

        if audit_logger is not None:
            audit_logger.log_tool_call(
                tool_name, tool_input,
                record_id=record_id,
                duration_ms=(time.monotonic() - start_time) * 1000,
            )
        return json.dumps(payload, indent=2)

    # ------------------------------------------------------------------
    # Mood
    # ------------------------------------------------------------------

    @mcp.tool
    async def record_mood_entry(
        ctx: Context,
        overall_mood: str,
        energy_level: str,
        stress_level: str,
        anxiety_level: str,
        sleep_quality: str | None = None,
        social_interaction: str | None = None,
        physical_activity: str | None = None,
        symptoms: list[str] | None = None,
        triggers: list[str] | None = None,
        coping_strategies: list[str] | None = None,
        notes: str = "",
        entry_date: str = "",
    ) -> str:
        """Record a daily mood check-in.

        Args:
            overall_mood: very_sad, sad, neutral, happy, or very_happy.
            energy_level: very_low, low, moderate, high, or very_high.
            stress_level: very_low, low, moderate, high, or very_high.
            anxiety_level: none, mild, moderate, high, or severe.
            sleep_quality: very_poor, poor, fair, good, or excellent.
            social_interaction: none, minimal, moderate, active, or very_active.
            physical_activity: none, light, moderate, intense, or very_intense.
            symptoms: e.g. ['fatigue', 'irritability'].
            triggers: e.g. ['work_stress', 'lack_of_sleep'].
            coping_strategies: e.g. ['exercise', 'journaling'].
            notes: Free-text notes (stored encrypted, max 1000 characters).
            entry_date: ISO date of the check-in. Defaults to today.
        """
        tool_input = {
            "overall_mood": overall_mood,
            "energy_level": energy_level,
            "stress_level": stress_level,
            "anxiety_level": anxiety_level,
            "entry_date": entry_date,
        }

        def write():
            entry = MoodEntry(
                id="",
                entry_date=entry_date or date.today().isoformat(),
                overall_mood=overall_mood,
                energy_level=energy_level,
                stress_level=stress_level,
                anxiety_level=anxiety_level,
                sleep_quality=sleep_quality,
                social_interaction=social_interaction,
                physical_activity=physical_activity,
                symptoms=symptoms or [],
                triggers=triggers or [],
                coping_strategies=coping_strategies or [],
                notes=notes,
            )
            entry_id = repository.add_mood_entry(entry)
            return {"status": "saved", "entry_id": entry_id, "entry_date": entry.entry_date}, entry_id

        return _record("record_mood_entry", tool_input, write)

    # ------------------------------------------------------------------
    # Sleep
    # ------------------------------------------------------------------

    @mcp.tool
    async def record_sleep_entry(
        ctx: Context,
        sleep_time: str,
        wake_time: str,
        sleep_quality: str,
        bed_time: str = "",
        time_to_fall_asleep: int = 0,
        night_wakeups: int = 0,
        caffeine_intake: str = "none",
        screen_time_before_bed: int = 0,
        exercise_today: bool = False,
        stress_level: str = "low",
        notes: str = "",
        entry_date: str = "",
    ) -> str:
        """Record one night of sleep. Duration is computed from the times.

        Args:
            sleep_time: When you fell asleep (HH:MM, 24-hour).
            wake_time: When you woke up (HH:MM, 24-hour).
            sleep_quality: poor, fair, good, or excellent.
            bed_time: When you went to bed (HH:MM), if different from sleep_time.
            time_to_fall_asleep: Minutes it took to fall asleep (0-300).
            night_wakeups: Number of times you woke during the night.
            caffeine_intake: none, low, moderate, or high.
            screen_time_before_bed: Minutes of screen use before bed.
            exercise_today: Whether you exercised that day.
            stress_level: low, moderate, or high.
            notes: Free-text notes (stored encrypted, max 500 characters).
            entry_date: ISO date of the night. Defaults to today.
        """
        tool_input = {
            "sleep_time": sleep_time,
            "wake_time": wake_time,
            "sleep_quality": sleep_quality,
            "entry_date": entry_date,
        }

        def write():
            duration = sleep_duration_hours(sleep_time, wake_time)
            if duration is None:
                raise ValueError("sleep_time and wake_time must be HH:MM")
            entry = SleepEntry(
                id="",
                entry_date=entry_date or date.today().isoformat(),
                sleep_time=sleep_time,
                wake_time=wake_time,
                sleep_quality=sleep_quality,
                sleep_duration=duration,
                bed_time=bed_time or None,
                time_to_fall_asleep=time_to_fall_asleep,
                night_wakeups=night_wakeups,
                caffeine_intake=caffeine_intake,
                screen_time_before_bed=screen_time_before_bed,
                exercise_today=exercise_today,
                stress_level=stress_level,
                notes=notes,
            )
            entry_id = repository.add_sleep_entry(entry)
            return {
                "status": "saved",
                "entry_id": entry_id,
                "entry_date": entry.entry_date,
                "sleep_duration_hours": duration,
            }, entry_id

        return _record("record_sleep_entry", tool_input, write)

    # ------------------------------------------------------------------
    # Medicines
    # ------------------------------------------------------------------

    @mcp.tool
    async def add_medicine(
        ctx: Context,
        name: str,
        medicine_type: str,
        start_date: str,
        end_date: str,
        dose_times: list[str],
        dosage: str = "",
        instructions: str = "",
        purpose: str = "",
        prescribed_by: str = "",
        side_effects: list[str] | None = None,
        notes: str = "",
    ) -> str:
        """Add a medicine course and schedule its daily doses.

        One dose is scheduled per time in ``dose_times`` for every day from
        ``start_date`` through ``end_date``.

        Args:
            name: Medicine name.
            medicine_type: tablet, capsule, syrup, injection, drops, cream, inhaler, or other.
            start_date: First day of the course (ISO date).
            end_date: Last day of the course (ISO date).
            dose_times: Daily administration times, e.g. ['08:00', '20:00'].
            dosage: Dosage per administration, e.g. '500mg'.
            instructions: e.g. 'after food'.
            purpose: What the medicine is for.
            prescribed_by: Prescribing doctor.
            side_effects: Known side effects to watch for.
            notes: Free-text notes (stored encrypted).
        """
        tool_input = {
            "name": name,
            "medicine_type": medicine_type,
            "start_date": start_date,
            "end_date": end_date,
            "dose_times": dose_times,
        }

        def write():
            medicine_id = repository.add_medicine(Medicine(
                id="",
                name=name,
                medicine_type=medicine_type,
                start_date=start_date,
                end_date=end_date,
                schedule=[
                    DoseTime(time=t, dosage=dosage, instructions=instructions)
                    for t in dose_times
                ],
                purpose=purpose,
                prescribed_by=prescribed_by,
                side_effects=side_effects or [],
                notes=notes,
            ))
            saved = repository.get_medicine(medicine_id)
            return {
                "status": "saved",
                "medicine_id": medicine_id,
                "total_duration_days": saved.total_duration if saved else None,
                "doses_scheduled": len(repository.get_dose_logs(medicine_id=medicine_id)),
            }, medicine_id

        return _record("add_medicine", tool_input, write)

    @mcp.tool
    async def list_medicines(ctx: Context, active_only: bool = True) -> str:
        """List medicine courses.

        Args:
            active_only: Only include medicines still being tracked.
        """
        medicines = repository.get_medicines(active_only=active_only)
        return json.dumps({
            "status": "ok",
            "count": len(medicines),
            "medicines": [
                {
                    "id": m.id,
                    "name": m.name,
                    "type": m.medicine_type,
                    "startDate": m.start_date,
                    "endDate": m.end_date,
                    "totalDuration": m.total_duration,
                    "doseTimes": [d.time for d in m.schedule],
                    "isActive": m.is_active,
                }
                for m in medicines
            ],
        }, indent=2)

    @mcp.tool
    async def list_doses(
        ctx: Context,
        scheduled_date: str = "",
        medicine_id: str = "",
        status: str = "",
    ) -> str:
        """List scheduled doses so they can be marked taken, skipped, or missed.

        Args:
            scheduled_date: ISO date to list. Defaults to today.
            medicine_id: Restrict to one medicine.
            status: Restrict to due, taken, missed, or skipped.
        """
        day = scheduled_date or date.today().isoformat()
        try:
            logs = repository.get_dose_logs(
                medicine_id=medicine_id or None,
                since=day,
                until=day,
                status=status or None,
            )
        except RepositoryError as exc:
            return json.dumps({"status": "error", "message": str(exc)})
        return json.dumps({
            "status": "ok",
            "date": day,
            "doses": [
                {
                    "id": log.id,
                    "medicineId": log.medicine_id,
                    "scheduledTime": log.scheduled_time,
                    "dosage": log.dosage,
                    "status": log.status,
                    "takenAt": log.taken_at,
                }
                for log in logs
            ],
        }, indent=2)

    @mcp.tool
    async def update_dose_status(
        ctx: Context,
        log_id: str,
        status: str,
        taken_at: str = "",
        actual_dosage: str | None = None,
        side_effects: list[str] | None = None,
        notes: str | None = None,
    ) -> str:
        """Mark a scheduled dose as taken, skipped, or missed.

        Args:
            log_id: Dose ID from ``list_doses``.
            status: taken, skipped, missed, or due.
            taken_at: When the dose was taken (ISO datetime). Defaults to now.
            actual_dosage: Dosage actually taken, if different.
            side_effects: Side effects experienced after this dose.
            notes: Free-text notes (stored encrypted).
        """
        tool_input = {"log_id": log_id, "status": status}

        def write():
            log = repository.update_dose_status(
                log_id,
                status,
                taken_at=taken_at or None,
                actual_dosage=actual_dosage,
                side_effects=side_effects,
                notes=notes,
            )
            return {"status": "updated", "log_id": log.id, "dose_status": log.status,
                    "taken_at": log.taken_at}, log.id

        return _record("update_dose_status", tool_input, write)

    @mcp.tool
    async def deactivate_medicine(ctx: Context, medicine_id: str) -> str:
        """Stop tracking a medicine. Its dose history is kept.

        Args:
            medicine_id: Medicine ID from ``list_medicines``.
        """
        def write():
            if not repository.deactivate_medicine(medicine_id):
                raise RepositoryError(f"Medicine not found: {medicine_id}")
            return {"status": "deactivated", "medicine_id": medicine_id}, medicine_id

        return _record("deactivate_medicine", {"medicine_id": medicine_id}, write)

    @mcp.tool
    async def sweep_overdue_doses(ctx: Context) -> str:
        """Mark doses still 'due' well past their scheduled time as 'missed'.

        Intended to be run periodically (e.g. by a scheduler). Safe to run
        repeatedly: doses already resolved are left alone.
        """
        def write():
            count = repository.mark_overdue_doses_missed(
                datetime.now(), grace=timedelta(hours=missed_dose_grace_hours)
            )
            return {
                "status": "ok",
                "doses_marked_missed": count,
                "grace_hours": missed_dose_grace_hours,
            }, None

        return _record("sweep_overdue_doses", {"grace_hours": missed_dose_grace_hours}, write)

    # ------------------------------------------------------------------
    # Vaccines
    # ------------------------------------------------------------------

    @mcp.tool
    async def create_vaccine_tracker(
        ctx: Context,
        child_name: str,
        date_of_birth: str,
        gender: str,
    ) -> str:
        """Create a child's vaccination tracker from the national schedule.

        Args:
            child_name: Child's name (stored encrypted).
            date_of_birth: ISO date of birth.
            gender: male or female.
        """
        tool_input = {"date_of_birth": date_of_birth, "gender": gender}

        def write():
            born = parse_date(date_of_birth)
            records = [
                VaccineRecord(id="", tracker_id="", **item)
                for item in build_vaccine_schedule(born)
            ]
            tracker_id = repository.create_vaccine_tracker(VaccineTracker(
                id="",
                child_name=child_name,
                date_of_birth=born.isoformat(),
                gender=gender,
                records=records,
            ))
            return {
                "status": "saved",
                "tracker_id": tracker_id,
                "vaccines_scheduled": len(records),
                "current_age": format_child_age(days_between(born, date.today())),
            }, tracker_id

        return _record("create_vaccine_tracker", tool_input, write)

    @mcp.tool
    async def list_vaccine_trackers(ctx: Context) -> str:
        """List children's vaccination trackers with their scheduled vaccines."""
        trackers = repository.get_vaccine_trackers()
        return json.dumps({
            "status": "ok",
            "trackers": [
                {
                    "id": t.id,
                    "childName": t.child_name,
                    "dateOfBirth": t.date_of_birth,
                    "gender": t.gender,
                    "vaccines": [
                        {
                            "id": r.id,
                            "name": r.vaccine_name,
                            "dueDate": r.due_date,
                            "age": r.age_at_vaccination,
                            "isCompleted": r.is_completed,
                            "completedDate": r.completed_date,
                        }
                        for r in t.records
                    ],
                }
                for t in trackers
            ],
        }, indent=2)

    @mcp.tool
    async def update_vaccine_status(
        ctx: Context,
        tracker_id: str,
        record_id: str,
        completed: bool = True,
        completed_date: str = "",
        notes: str | None = None,
    ) -> str:
        """Mark a scheduled vaccine as given (or undo it).

        Args:
            tracker_id: Tracker ID from ``create_vaccine_tracker``.
            record_id: Vaccine ID from ``list_vaccine_trackers``.
            completed: True when the vaccine was given.
            completed_date: ISO date given. Defaults to today.
            notes: Free-text notes (stored encrypted).
        """
        tool_input = {"tracker_id": tracker_id, "record_id": record_id, "completed": completed}

        def write():
            record = repository.set_vaccine_completed(
                tracker_id,
                record_id,
                completed,
                completed_date=completed_date or None,
                notes=notes,
            )
            return {
                "status": "updated",
                "record_id": record.id,
                "vaccine_name": record.vaccine_name,
                "is_completed": record.is_completed,
                "completed_date": record.completed_date,
            }, record.id

        return _record("update_vaccine_status", tool_input, write)

    # ------------------------------------------------------------------
    # Period tracker
    # ------------------------------------------------------------------

    def _period_payload(tracker: PeriodTracker) -> dict[str, Any]:
        today = date.today()
        return {
            "name": tracker.name,
            "age": tracker.age,
            "lastPeriodDate": tracker.last_period_date,
            "cycleLength": tracker.cycle_length,
            **cycle_status(parse_date(tracker.last_period_date), tracker.cycle_length, today),
        }

    @mcp.tool
    async def setup_period_tracker(
        ctx: Context,
        name: str,
        age: int,
        last_period_date: str,
        cycle_length: int = 28,
    ) -> str:
        """Create or update the menstrual cycle profile.

        Args:
            name: Your name (stored encrypted).
            age: Age in years (10-60).
            last_period_date: ISO date your last period started (within the past year).
            cycle_length: Typical cycle length in days (21-35).
        """
        tool_input = {"age": age, "last_period_date": last_period_date, "cycle_length": cycle_length}

        def write():
            tracker = repository.save_period_tracker(PeriodTracker(
                name=name,
                age=age,
                last_period_date=last_period_date,
                cycle_length=cycle_length,
            ))
            return {"status": "saved", **_period_payload(tracker)}, None

        return _record("setup_period_tracker", tool_input, write)

    @mcp.tool
    async def mark_period_started(ctx: Context, start_date: str = "") -> str:
        """Record that a new period started.

        Args:
            start_date: ISO date the period started. Defaults to today.
        """
        def write():
            tracker = repository.mark_period_started(start_date or None)
            return {"status": "updated", **_period_payload(tracker)}, None

        return _record("mark_period_started", {"start_date": start_date}, write)

    @mcp.tool
    async def period_status(ctx: Context) -> str:
        """Show the current cycle day, phase, and next predicted period."""
        tracker = repository.get_period_tracker()
        if tracker is None:
            return json.dumps({
                "status": "not_found",
                "message": "Set up the period tracker with setup_period_tracker first.",
            })
        try:
            payload = _period_payload(tracker)
        except ValueError as exc:
            return json.dumps({"status": "error", "message": str(exc)})
        return json.dumps({"status": "ok", **payload}, indent=2)
