"""Shared constants for agentpm."""

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG = 2
EXIT_NOT_FOUND = 3
EXIT_VALIDATION = 4
EXIT_INVALID_STATE = 5

CONFIG_FILENAME = ".agentpm.json"
DEFAULT_ASSIGNEE = "agent"

# Lock wait for a single mutation, seconds
LOCK_TIMEOUT = 10

OUTPUT_FORMATS = ("text", "json", "xml")
