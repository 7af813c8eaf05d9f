"""Source hosting access configuration.

These settings control how repository trees and file contents are fetched
from GitHub and how much of each file is handed to the model.
"""

import re

# =============================================================================
# Endpoints
# =============================================================================
# Trees come from the REST API (recursive listing of HEAD). File bodies come
# from the raw content host, which is not rate limited the same way.

GITHUB_API_BASE = "https://api.github.com"
GITHUB_RAW_BASE = "https://raw.githubusercontent.com"
GITHUB_WEB_BASE = "https://github.com"
REQUEST_TIMEOUT_SECONDS = 30.0

# =============================================================================
# Size Limits
# =============================================================================
# Files longer than MAX_FILE_CHARS are cut and suffixed with the truncation
# marker. The analyzer sees at most MAX_TREE_PATHS paths from the tree and
# reads at most MAX_KEY_FILES key files.

MAX_FILE_CHARS = 15_000
MAX_TREE_PATHS = 500
MAX_KEY_FILES = 10

TRUNCATION_MARKER = "\n\n... [truncated]"
UNREADABLE_FILE_MARKER = "[Could not read file]"

# =============================================================================
# Key File Patterns
# =============================================================================
# Checked in order against every blob path. READMEs, ecosystem manifests and
# conventional entry points give the analyzer the best overview per token.

KEY_FILE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^readme\.md$", re.IGNORECASE),
    re.compile(r"^package\.json$"),
    re.compile(r"^pyproject\.toml$"),
    re.compile(r"^cargo\.toml$", re.IGNORECASE),
    re.compile(r"^go\.mod$"),
    re.compile(r"^requirements\.txt$"),
    re.compile(r"^setup\.py$"),
    re.compile(r"^src/index\.\w+$"),
    re.compile(r"^src/main\.\w+$"),
    re.compile(r"^src/app\.\w+$"),
    re.compile(r"^app\.\w+$"),
    re.compile(r"^index\.\w+$"),
    re.compile(r"^main\.\w+$"),
    re.compile(r"^lib/index\.\w+$"),
)
