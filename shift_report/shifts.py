"""
Shift windows and the WIQL query built from them.

A shift is a fixed UTC time range. The selected shift decides which day,
relative to @Today, the report covers.
"""
from dataclasses import dataclass
from datetime import datetime, time, timezone
from typing import Dict, Optional, Sequence

from .constants import FieldNames, format_wiql_fields
from .validation import (
    ValidationError,
    sanitize_wiql_string,
    validate_field_name,
    validate_wiql
)


@dataclass(frozen=True)
class ShiftWindow:
    """A named UTC time range; end may be earlier than start (wraps midnight)"""
    name: str
    start: time
    end: time

    @property
    def wraps_midnight(self) -> bool:
        return self.end <= self.start

    def contains(self, moment: time) -> bool:
        if self.wraps_midnight:
            return moment >= self.start or moment < self.end
        return self.start <= moment < self.end

    def day_offset(self, now: datetime) -> int:
        """
        Day, relative to today (UTC), on which the current or next
        occurrence of this shift starts.
        """
        current = _as_utc(now).time()
        if self.wraps_midnight and current < self.end:
            return -1
        if not self.wraps_midnight and current >= self.end:
            return 1
        return 0


SHIFTS: Dict[str, ShiftWindow] = {
    "morning": ShiftWindow("morning", time(6, 0), time(14, 0)),
    "afternoon": ShiftWindow("afternoon", time(14, 0), time(22, 0)),
    "night": ShiftWindow("night", time(22, 0), time(6, 0)),
}


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def get_shift(name: str) -> ShiftWindow:
    """
    Look up a shift by name (case-insensitive).

    Raises:
        ValidationError: If the name is not one of the fixed shifts
    """
    shift = SHIFTS.get((name or "").strip().lower())
    if shift is None:
        raise ValidationError(
            f"Unknown shift: '{name}'. Allowed shifts: {', '.join(SHIFTS)}"
        )
    return shift


def today_macro(offset: int) -> str:
    """WIQL @Today macro with a day offset, e.g. '@Today - 1'."""
    if offset == 0:
        return "@Today"
    sign = "+" if offset > 0 else "-"
    return f"@Today {sign} {abs(offset)}"


def shift_predicate(shift: ShiftWindow, date_field: str, now: Optional[datetime] = None) -> str:
    """
    WIQL clause selecting items whose date field falls on the shift's day.

    Args:
        shift: Selected shift window
        date_field: Reference name of the date field to filter on
        now: Current time; defaults to the current UTC time
    """
    date_field = validate_field_name(date_field)
    offset = shift.day_offset(now or datetime.now(timezone.utc))
    return (
        f"[{date_field}] >= {today_macro(offset)} "
        f"AND [{date_field}] < {today_macro(offset + 1)}"
    )


def build_shift_query(
    shift: ShiftWindow,
    project: str,
    fields: Sequence[str],
    date_field: str,
    work_item_type: Optional[str] = None,
    now: Optional[datetime] = None
) -> str:
    """
    Compose the WIQL query for one shift.

    Returns:
        Validated WIQL text
    """
    if not project:
        raise ValidationError("Project cannot be empty")

    select_fields = list(dict.fromkeys([FieldNames.ID, *fields]))
    query = (
        f"SELECT {format_wiql_fields(select_fields)}\n"
        f"FROM WorkItems\n"
        f"WHERE [{FieldNames.TEAM_PROJECT}] = '{sanitize_wiql_string(project)}'\n"
        f"AND {shift_predicate(shift, date_field, now)}"
    )

    if work_item_type:
        query += f"\nAND [{FieldNames.WORK_ITEM_TYPE}] = '{sanitize_wiql_string(work_item_type)}'"

    query += f"\nORDER BY [{FieldNames.ID}]"

    return validate_wiql(query)
