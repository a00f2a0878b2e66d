from datetime import datetime

SLOT_FORMAT = "%H:%M"            # '09:30', as stored
DISPLAY_FORMAT = "%I:%M %p"      # '9:30 AM'
INPUT_FORMATS = ("%H:%M", "%I:%M %p", "%I:%M%p", "%H:%M:%S")  # what we accept in normalize_timeslot


def normalize_timeslot(time_str: str) -> str:
    """
    Convert <input type="time"> values ('9:30', '09:30:00') or '9:30 AM'
    into the stored slot string 'HH:MM'. Returns "" when unparseable.
    """
    if not time_str:
        return ""

    time_str = time_str.strip().upper()
    for fmt in INPUT_FORMATS:
        try:
            return datetime.strptime(time_str, fmt).strftime(SLOT_FORMAT)
        except ValueError:
            continue

    return ""


def display_timeslot(slot: str) -> str:
    """'14:00' -> '2:00 PM' for the dashboard tables."""
    normalized = normalize_timeslot(slot)
    if not normalized:
        return slot or ""
    return datetime.strptime(normalized, SLOT_FORMAT).strftime(DISPLAY_FORMAT).lstrip("0")

def parse_date(value):
    """
    Parse a date string in 'YYYY-MM-DD' format into a date object.
    Returns None if parsing fails.
    """
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except(TypeError, ValueError):
        return None
