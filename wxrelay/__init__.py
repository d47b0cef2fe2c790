"""
wxrelay - a WeChat conversational relay with tool calling.
"""

__version__ = "0.1.0"
__logo__ = "💬"
