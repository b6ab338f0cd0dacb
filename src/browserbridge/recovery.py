"""
Recovery Hints

Failure-text patterns with guidance for the caller.
When a tool fails, the Err result gets a ``hint`` telling the user (or the
LLM driving the tools) what to try next. The engine itself never retries.
"""

from dataclasses import dataclass


@dataclass
class RecoveryStrategy:
    """Strategy for recovering from a tool failure."""
    guidance: str  # Human-readable explanation
    retry_tool: str | None = None  # Suggested tool to call next
    give_up: bool = False  # If True, retrying the same call will not help


# Checked in order; first match wins
ERROR_PATTERNS = {
    "login_required": {
        "indicators": ["log in to messenger manually", "login required"],
        "strategy": RecoveryStrategy(
            guidance=(
                "Messenger is showing its login page. Log in in the open browser window "
                "(set EDGE_USER_DATA_DIR to keep the login across restarts), then call the tool again."
            ),
            give_up=True,
        ),
    },
    "browser_missing": {
        "indicators": ["executable doesn't exist", "playwright install", "browser launch failed"],
        "strategy": RecoveryStrategy(
            guidance=(
                "The browser could not be started. Install it with `playwright install msedge` "
                "(or set BROWSER_TYPE=chromium), and make sure no other browser uses the profile directory."
            ),
            give_up=True,
        ),
    },
    "invalid_tab": {
        "indicators": ["invalid tab index"],
        "strategy": RecoveryStrategy(
            guidance="Tabs may have been opened or closed since they were listed. Call web_list_tabs and retry.",
            retry_tool="web_list_tabs",
        ),
    },
    "conversation_missing": {
        "indicators": ["could not find conversation"],
        "strategy": RecoveryStrategy(
            guidance=(
                "No search result matched. Check the spelling, or use "
                "messenger_search_conversation to see which names Messenger returns."
            ),
            retry_tool="messenger_search_conversation",
        ),
    },
    "timeout": {
        "indicators": ["timed out", "timeout"],
        "strategy": RecoveryStrategy(
            guidance=(
                "The page did not respond in time. Earlier steps are not rolled back; "
                "take a web_screenshot to see the current state, then retry."
            ),
            retry_tool="web_screenshot",
        ),
    },
    "element_missing": {
        "indicators": ["could not find", "element not found", "no element"],
        "strategy": RecoveryStrategy(
            guidance=(
                "An expected element is not on the page. The page may still be loading or its "
                "layout changed; use web_accessibility_snapshot to inspect it."
            ),
            retry_tool="web_accessibility_snapshot",
        ),
    },
    "target_closed": {
        "indicators": ["target closed", "has been closed", "target page, context or browser"],
        "strategy": RecoveryStrategy(
            guidance="The browser or tab was closed. Call the tool again to start a fresh browser.",
        ),
    },
}


def get_recovery_strategy(error: str) -> RecoveryStrategy | None:
    """Return the first strategy whose indicators appear in ``error``."""
    if not error:
        return None
    text = error.lower()
    for pattern in ERROR_PATTERNS.values():
        if any(indicator in text for indicator in pattern["indicators"]):
            return pattern["strategy"]
    return None


def get_hint(error: str) -> str | None:
    strategy = get_recovery_strategy(error)
    return strategy.guidance if strategy else None
