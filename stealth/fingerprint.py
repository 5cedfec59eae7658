"""
CRAWL — Browser Fingerprint
Builds a realistic desktop Chrome browser context so the directory serves
the normal results table instead of a block page.
"""

import random


# ──────────────────────────────────────────────────
#  Realistic browser profiles
# ──────────────────────────────────────────────────

# Chrome only: the client-hint headers below describe Chromium
USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
]

VIEWPORT = {"width": 1920, "height": 1080}

TIMEZONES = [
    "America/New_York",
    "America/Chicago",
    "America/Los_Angeles",
    "Europe/London",
]

LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--no-sandbox",
    "--disable-setuid-sandbox",
]

BASE_HEADERS = {
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,"
        "image/webp,image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.7"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Cache-Control": "max-age=0",
    "sec-ch-ua-mobile": "?0",
}

INIT_SCRIPT = """
    // Override navigator.webdriver (bot detection flag)
    Object.defineProperty(navigator, 'webdriver', {
        get: () => undefined
    });

    // Override plugins (headless has 0 plugins)
    Object.defineProperty(navigator, 'plugins', {
        get: () => [1, 2, 3, 4, 5]
    });

    Object.defineProperty(navigator, 'languages', {
        get: () => ['en-US', 'en']
    });

    // Headless Chrome has no chrome.runtime
    window.chrome = {
        runtime: {}
    };

    const originalQuery = window.navigator.permissions.query;
    window.navigator.permissions.query = (parameters) =>
        parameters.name === 'notifications'
            ? Promise.resolve({ state: Notification.permission })
            : originalQuery(parameters);
"""


def _chrome_version(user_agent: str) -> str:
    marker = "Chrome/"
    if marker not in user_agent:
        return "120"
    return user_agent.split(marker, 1)[1].split(".", 1)[0]


class FingerprintManager:
    """
    Generates desktop Chrome browser-context settings.
    User agent, client hints and platform header always agree with each other.
    """

    def __init__(self):
        self._used_fingerprints = []

    def generate(self) -> dict:
        ua = random.choice(USER_AGENTS)
        version = _chrome_version(ua)
        platform = "macOS" if "Macintosh" in ua else "Windows"

        headers = dict(BASE_HEADERS)
        headers["sec-ch-ua"] = f'"Not_A Brand";v="8", "Chromium";v="{version}", "Google Chrome";v="{version}"'
        headers["sec-ch-ua-platform"] = f'"{platform}"'

        fingerprint = {
            "user_agent": ua,
            "viewport": dict(VIEWPORT),
            "timezone_id": random.choice(TIMEZONES),
            "locale": "en-US",
            "extra_http_headers": headers,
            "_platform": platform,
        }
        self._used_fingerprints.append(fingerprint)
        return fingerprint

    def get_context_kwargs(self, fingerprint: dict) -> dict:
        """Only the keys Playwright's browser.new_context() accepts."""
        return {
            key: value for key, value in fingerprint.items()
            if not key.startswith("_")
        }

    async def apply_js_overrides(self, context_or_page):
        """Patch navigator properties before any site script runs."""
        await context_or_page.add_init_script(INIT_SCRIPT)

    @property
    def stats(self) -> dict:
        return {
            "total_fingerprints_generated": len(self._used_fingerprints),
            "unique_user_agents": len(set(
                fp["user_agent"] for fp in self._used_fingerprints
            )),
        }
