"""Q&A configuration.

The Q&A model interleaves reasoning regions with its answer. Reasoning is
wrapped in sentinel tags that the demultiplexer strips out of the answer.
"""

# =============================================================================
# Sentinel Tags
# =============================================================================

THINK_OPEN_TAG = "<think>"
THINK_CLOSE_TAG = "</think>"

# =============================================================================
# Progress Messages
# =============================================================================
# First reasoning step shown before the model produces any output.

INITIAL_THINKING_STEP = "Analyzing question against wiki content..."
STREAM_FAILURE_MESSAGE = "The answer stream was interrupted. Please try again."
