"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_PAGE_SIZE = 20
MY_RECORDS_PAGE_SIZE = 10
MIN_PASSWORD_LENGTH = 6

# Upper bound on insert retries when a generated username loses a race.
MAX_PROVISION_ATTEMPTS = 5

SYSTEM_ERROR_CODE = 5000
