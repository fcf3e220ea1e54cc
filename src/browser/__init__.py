"""Browser automation module for HDFC NetBanking.

This module provides browser lifecycle management, authentication, statement
navigation and statement parsing using Playwright.
"""

from src.browser.auth import AuthManager, LoginError
from src.browser.context import BrowserManager
from src.browser.navigator import StatementError, StatementNavigator
from src.browser.parser import StatementParser
from src.browser.retry import TransientUIError

__all__ = [
    "AuthManager",
    "BrowserManager",
    "LoginError",
    "StatementError",
    "StatementNavigator",
    "StatementParser",
    "TransientUIError",
]
