import os

# Server configuration
SERVER_PORT = 5001
DEBUG_MODE = False
DEBUGPY_ADDRESS = ("0.0.0.0", 5678)

# Per-profile key/value stores live next to the audit trail.
STORE_DIR = os.path.join(os.path.dirname(__file__), ".sandbox", "profiles")

# Simulated latency for scripted responses, in seconds.
REPLY_DELAY_SECONDS = 1.0
REGENERATE_DELAY_SECONDS = 0.5
FILE_ACK_DELAY_SECONDS = 0.7
ANALYSIS_DELAY_SECONDS = 2.0
SEARCH_DELAY_SECONDS = 1.5

# Conversation limits
RECENT_CHATS_LIMIT = 10
PREVIEW_LENGTH = 50
MAX_UPLOAD_BYTES = 10 * 1024 * 1024

DOCUMENT_MIME_TYPES = [
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
]
CHAT_ATTACHMENT_MIME_TYPES = DOCUMENT_MIME_TYPES + ["text/plain"]

# Student plan eligibility
EDU_DOMAINS = (".ac.ke", ".edu", ".edu.ke")

# Monthly prices in KES
PLAN_PRICES = {
    "basic": 2500,
    "pro": 5500,
    "student": 500,
}

SALES_EMAIL = "sales@legalai.co.ke"
SALES_PHONE = "+254 700 000 000"

DEFAULT_LANGUAGE = "en"
DEFAULT_DATE_FORMAT = "dd/mm/yyyy"
DEFAULT_THEME = "light"
