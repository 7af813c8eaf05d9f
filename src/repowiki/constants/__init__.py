"""Configuration constants.

Re-exports all config for convenient importing:
    from repowiki.constants import MAX_FILE_CHARS, THINK_OPEN_TAG
"""

from repowiki.constants.source import *  # noqa: F403
from repowiki.constants.generation import *  # noqa: F403
from repowiki.constants.llm import *  # noqa: F403
from repowiki.constants.qa import *  # noqa: F403
