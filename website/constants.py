# Bookable time slots, every 30 minutes from 09:00 to 17:00
TIME_SLOTS = [
    "09:00", "09:30", "10:00", "10:30", "11:00", "11:30",
    "12:00", "12:30", "13:00", "13:30", "14:00", "14:30",
    "15:00", "15:30", "16:00", "16:30", "17:00",
]

OTHER_REASON = "Other"
DEFAULT_REASON = "Appointment Booking"
DEFAULT_DEPARTMENT = "General Inquiry"

APPOINTMENT_REASONS = [
    "Personal Care",
    "Domiciliary Care",
    "Sitting Services",
    "Live-in Care",
    "Supported Living",
    "General Inquiry",
    OTHER_REASON,
]

DEPARTMENTS = [
    "General Inquiry",
    "Care Services",
    "Recruitment",
    "Management",
]

APPLICATION_FIELD_TYPES = ["text", "textarea", "file", "select", "checkbox"]
