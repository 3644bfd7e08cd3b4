"""Constants for form traversal and field resolution."""

# Timeouts and Delays
DEFAULT_TIMEOUT = 10.0        # seconds
SHORT_TIMEOUT = 3.0           # seconds
TRANSITION_TIMEOUT = 5.0      # seconds, wait for a step's content to change
POLL_INTERVAL = 0.1           # seconds
BUTTON_POLL_INTERVAL = 0.2    # seconds
SHORT_DELAY = 0.5             # seconds
SETTLE_DELAY = 0.1            # seconds, after each committed field
CLICK_DELAY = 0.8             # seconds
TYPEAHEAD_DELAY = 0.3         # seconds, between typing and reading suggestions
DROPDOWN_SELECTION_DELAY = 0.7
LONG_SETTLE_DELAY = 2.0       # seconds, when a step fingerprint did not change
BETWEEN_JOBS_DELAY = 2.0      # seconds

# Navigation
MAX_FORM_STEPS = 12
STALL_THRESHOLD = 3
REVIEW_PROGRESS_THRESHOLD = 90
REFILL_PROGRESS_THRESHOLD = 80
MAX_FIELD_RETRIES = 3

# Confirmation
CONFIRMATION_TIMEOUT = 10.0   # seconds
CONFIRMATION_POLL_INTERVAL = 0.5
WEAK_SIGNAL_THRESHOLD = 3

# Similarity Thresholds (0.0 to 1.0)
CACHE_SIMILARITY_THRESHOLD = 0.7
OPTION_FUZZY_THRESHOLD = 85   # thefuzz scale, 0-100
COUNTRY_DENSITY_MIN_OPTIONS = 10
COUNTRY_DENSITY_SAMPLE = 20
COUNTRY_DENSITY_MIN_MATCHES = 3

# Answer service
DEFAULT_MODEL = "gemini/gemini-1.5-flash"
DEFAULT_RPM = 15
ANSWER_TIMEOUT = 15.0         # seconds
MAX_CONTEXT_PAIRS = 20

# Defaults used when nothing else resolves a value
DEFAULT_COUNTRY = "India"
DEFAULT_CITY = "Bengaluru"
DEFAULT_PHONE = "9999999999"
DEFAULT_EXPERIENCE_YEARS = "4"
MIN_EXPERIENCE_YEARS = 2
AFFIRMATIVE_ANSWER = "Yes"
UNKNOWN_LABEL = "[Unknown Field]"
SUMMARY_FALLBACK = (
    "I am a professional with relevant experience and skills for this position. "
    "I am excited about this opportunity and believe my background makes me a strong candidate."
)

# Reserved cache keys
CATEGORY_KEY_PREFIX = "__fieldtype_"
