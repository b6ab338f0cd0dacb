"""BrowserBridge — browser automation and Messenger tools for MCP hosts."""

__version__ = "1.0.0"
__description__ = "Drive a real browser (and Messenger) from any MCP client."

# Export key components
from browserbridge.config import load_config, load_settings, BrowserSettings, Config

__all__ = ["load_config", "load_settings", "BrowserSettings", "Config"]
