"""
Project-wide constants for the research completion toolkit

This module centralizes the magic numbers and fixed prompt fragments used by
the completion controller and the resilient decoder.
"""

# Generation and retry constants
DEFAULT_MAX_RETRIES = 3
DEFAULT_RESPONSE_TIMEOUT_MS = 600_000  # 10 minutes, small local models are slow
DEFAULT_RETRY_DELAY_MS = 1_000
DEFAULT_REJECTED_RETRY_DELAY_MS = 2_000  # longer pause after an upstream rejection
DEFAULT_SHORT_PROMPT_CHARS = 500

# Prompt fragments
CONTINUATION_PROMPT = (
    "Please complete your previous response starting from where you left off."
)
PARTIAL_RESPONSE_HEADER = "Previous partial response:"
DIRECT_ANSWER_INSTRUCTION = "Please provide a direct answer."
FALLBACK_QUERY = "Please extract relevant information"
SIMPLIFIED_PROMPT_TEMPLATE = (
    "Extract information to answer: {query}\n\n"
    "Provide a direct, simple answer with key facts only.\n"
    "No thinking, no analysis, just the facts."
)

# Issue detection thresholds
LOOP_REPEAT_THRESHOLD = 6  # consecutive repeats of one word
ABRUPT_ENDING_MIN_LENGTH = 100
SENTENCE_TERMINATORS = (".", "!", "?")
MAX_MERGE_OVERLAP_WORDS = 10

# Thinking block markers emitted by reasoning models
THINK_OPEN = "<think>"
THINK_CLOSE = "</think>"

# Upstream error signatures (matched against exception messages)
INVALID_JSON_SIGNATURE = "Invalid JSON response"
REJECTED_RESPONSE_SIGNATURE = "Ollama API rejected response"
NOT_DONE_SIGNATURE = 'done": false'
TIMEOUT_SIGNATURE = "timeout"

# Ollama defaults
DEFAULT_OLLAMA_BASE_URL = "http://localhost:11434"
DEFAULT_OLLAMA_MODEL = "llama3.2"
DEFAULT_OLLAMA_TIMEOUT_SECONDS = 600.0

# Logging previews
ERROR_PREVIEW_CHARS = 200
