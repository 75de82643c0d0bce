"""
Fixed patient-facing guard messages.
"""

ABUSE_MESSAGE = "I can only help with dental appointments."
UNCLEAR_MESSAGE = "I'm having trouble understanding that. Please type a date like: May 20."
RESET_MESSAGE = "Let's start fresh 🙂\nWhat can we help with? Cleaning • Checkup • Pain • Book"
HUMAN_TAKEOVER_MESSAGE = "I'll notify the clinic team to assist you directly."
CHAT_LIMIT_MESSAGE = "Clinic chat limit reached today. Please call the clinic."
SESSION_LIMIT_MESSAGE = "This chat has reached its message limit. Please call the clinic or start a new chat."
RATE_LIMIT_MESSAGE = "You're sending messages too quickly. Please wait a minute and try again."
