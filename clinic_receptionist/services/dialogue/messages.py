"""
Guided dialogue copy and chip sets.
"""

from ...core.models import Chip

GREETING_MESSAGE = "Hi 👋 How can I help you today?"
MSG_BOOKING_REASON = "What do you need? Pick a reason."
MSG_PICK_DAY = "When would you like to come? Pick a day."
MSG_NO_DAYS = "There are no open days in the next few weeks. Please call the clinic."
MSG_NO_SLOTS_DAY = "No slots available for this day. Pick another date."
MSG_BAD_DATE = "I couldn't read that date. Pick a day or type one like: May 20."
MSG_CHOOSE_SLOT = "Choose a time slot:"
MSG_SLOT_TAKEN = "Sorry, that time was just taken. Choose another slot:"
MSG_ENTER_NAME = "Enter your full name."
MSG_ENTER_EMAIL = "Thanks! Enter your email."
MSG_ENTER_WHATSAPP = "Enter your WhatsApp number (with country code, e.g. +1234567890)."
MSG_DETAILS_INCOMPLETE = "Please pick a time and enter your name and email to continue."
MSG_BOOKED = "You're booked for {start}. Confirmation sent by email."
MSG_BOOKING_FAILED = "We couldn't complete your booking. Please try again or call the clinic."
MSG_VERIFY_PROMPT = "Enter the email you booked with."
MSG_VERIFY_FAILED = "Email not found. Please try again ({attempt} of {max_attempts})."
MSG_VERIFY_EXHAUSTED = "We couldn't find a booking for that email. Would you like to book a new appointment?"
MSG_NO_UPCOMING = "You have no upcoming appointments. Would you like to book one?"
MSG_WELCOME_BACK = "Welcome back! Your appointment: {start}. What next?"
MSG_CANCELLED = "Your appointment has been cancelled. We hope to see you soon!"
MSG_RESCHEDULED = "Rescheduled! Confirmation sent. How else can we help?"
MSG_CALL_CLINIC = "We couldn't update your appointment. Please call the clinic."
MSG_CLINIC_INFO = "We're at {location}. Hours: {hours}. Book?"
MSG_EMERGENCY = "Call us now: {phone}. Tooth out? Keep in milk. Bleeding? Use gauze."
MSG_PICK_OPTION = "Please pick one of the options below."
MSG_CALENDAR = "Opening Google Calendar."

BACK = Chip(key="back", label="Back")
BOOK = Chip(key="book", label="Book appointment")

GREETING_CHIPS = [
    BOOK,
    Chip(key="change_cancel", label="Change / cancel"),
    Chip(key="clinic_info", label="Clinic info"),
    Chip(key="emergency", label="Emergency", variant="danger"),
]

SERVICE_CHIPS = [
    Chip(key="cleaning", label="Cleaning"),
    Chip(key="pain", label="Pain"),
    Chip(key="checkup", label="Checkup"),
    Chip(key="root_canal", label="Root canal"),
    Chip(key="other", label="Other"),
]
SERVICE_KEYS = {chip.key for chip in SERVICE_CHIPS}

MANAGE_CHIPS = [
    Chip(key="reschedule", label="Reschedule"),
    Chip(key="cancel_appointment", label="Cancel appointment"),
    BACK,
]

INFO_CHIPS = [BOOK, BACK]
