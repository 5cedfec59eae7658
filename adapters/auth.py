"""
CRAWL — Directory login
Optional sign-in before crawling. Some directory columns are only rendered
for logged-in sessions.
"""

import logging
from dataclasses import dataclass

from playwright.async_api import Page

logger = logging.getLogger(__name__)

LOGIN_URL = "https://openvc.app/login"

EMAIL_INPUT = 'input[type="email"], input[name="email"], input[id*="email"]'
PASSWORD_INPUT = 'input[type="password"], input[name="password"], input[id*="password"]'
SUBMIT_BUTTON = (
    'button[type="submit"], button:has-text("Log in"), '
    'button:has-text("Sign in"), [class*="login-button"]'
)
LOGGED_IN_MARKER = '[class*="user"], [class*="profile"], [data-testid*="user"]'


@dataclass(frozen=True)
class LoginCredentials:
    email: str
    password: str

    def __repr__(self) -> str:
        return f"LoginCredentials(email={self.email!r}, password='***')"


async def login_to_openvc(
    page: Page,
    credentials: LoginCredentials,
    login_url: str = LOGIN_URL,
    screenshot_path: str = "login-error.png",
) -> bool:
    """
    Sign in through the login form.

    Returns True once the search page (or a logged-in element) shows up,
    False on any failure. Never raises.
    """
    try:
        logger.info("  🔑  Navigating to login page...")
        await page.goto(login_url, wait_until="networkidle", timeout=30000)
        await page.wait_for_selector(EMAIL_INPUT, timeout=10000)

        await page.fill(EMAIL_INPUT, credentials.email)
        await page.fill(PASSWORD_INPUT, credentials.password)
        await page.click(SUBMIT_BUTTON)

        try:
            await page.wait_for_url("**/search**", timeout=15000)
        except Exception:
            await page.wait_for_selector(LOGGED_IN_MARKER, timeout=15000)

        logger.info("  ✅  Login successful")
        return True
    except Exception as e:
        logger.error(f"  ❌  Login failed: {e}")
        try:
            await page.screenshot(path=screenshot_path)
        except Exception:
            pass
        return False
