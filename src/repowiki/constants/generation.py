"""Wiki generation configuration.

Bounds on the subsystem manifest and page builds. The model is asked to stay
inside these ranges and the response schemas enforce them.
"""

# =============================================================================
# Subsystem Manifest
# =============================================================================
# A wiki has between MIN_SUBSYSTEMS and MAX_SUBSYSTEMS feature-facing pages.
# Each subsystem points at no more than MAX_RELEVANT_FILES source files.

MIN_SUBSYSTEMS = 3
MAX_SUBSYSTEMS = 7
MAX_RELEVANT_FILES = 8

# =============================================================================
# Output Budget
# =============================================================================
# Cap on tokens for each structured generation call (analysis and pages).

MAX_OUTPUT_TOKENS = 4096

# =============================================================================
# Concurrency
# =============================================================================
# Page builds run concurrently behind a semaphore of this size. The default is
# larger than MAX_SUBSYSTEMS so a normal manifest is built all at once.

PARALLEL_PAGE_LIMIT = 8

# =============================================================================
# User-facing Messages
# =============================================================================

NOT_FOUND_MESSAGE = "Repository not found or not accessible."
GENERIC_FAILURE_MESSAGE = "Failed to generate wiki. Please try again."
