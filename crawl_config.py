"""
CRAWL — Run Configuration
Resolves the immutable configuration for one crawl run from:
- config/sites.yaml (selectors, timeouts, pacing, engine defaults)
- an optional run input JSON file (startUrls, maxPages, exportToJson, proxyConfiguration)
- environment (.env → os.environ)
- CLI flags (highest priority)
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

import yaml
from dotenv import load_dotenv

from adapters.auth import LoginCredentials

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(__file__).parent / "config"
SITES_PATH = CONFIG_DIR / "sites.yaml"
PROXIES_PATH = CONFIG_DIR / "proxies.yaml"
DEFAULT_INPUT_PATH = Path("storage/INPUT.json")

DEFAULT_START_URL = "https://openvc.app/search"
DEFAULT_BASE_URL = "https://openvc.app/"
DEFAULT_MAX_PAGES = 1000

# Set when the run is hosted by a managed dataset store; local export is then off by default
STORAGE_ENV = "CRAWL_STORAGE_DIR"


@dataclass(frozen=True)
class SiteConfig:
    """Static description of the directory site being crawled."""
    name: str
    url: str = DEFAULT_START_URL
    base_url: str = DEFAULT_BASE_URL
    selectors: Dict[str, object] = field(default_factory=dict)
    timeouts: Dict[str, object] = field(default_factory=dict)
    pacing: Dict[str, float] = field(default_factory=dict)
    block_indicators: Tuple[str, ...] = ("403", "Forbidden", "blocked", "Access Denied")
    late_block_indicators: Tuple[str, ...] = ("403", "Forbidden")


@dataclass(frozen=True)
class CrawlConfig:
    """Everything the engine needs for one run. Built once, never mutated."""
    site: SiteConfig
    start_urls: Tuple[str, ...] = (DEFAULT_START_URL,)
    max_pages: int = DEFAULT_MAX_PAGES
    export_to_json: bool = True
    export_path: str = "data/investors.json"
    proxy_configuration: Optional[dict] = None
    proxies_path: str = str(PROXIES_PATH)
    headless: bool = False
    max_concurrency: int = 1
    max_request_retries: int = 3
    retry_backoff_s: float = 2.0
    screenshots: bool = True
    screenshot_dir: str = "data/screenshots"
    storage_dir: str = "storage"
    login: bool = False
    credentials: Optional[LoginCredentials] = None
    dry_run: bool = False


def default_export_to_json(environ=None) -> bool:
    """Export locally unless a managed storage directory is configured."""
    environ = os.environ if environ is None else environ
    return not environ.get(STORAGE_ENV)


def load_yaml(path) -> dict:
    config_file = Path(path)
    if not config_file.exists():
        return {}
    with open(config_file) as f:
        return yaml.safe_load(f) or {}


def load_input(path) -> dict:
    """Read the run input JSON. Missing file means empty input."""
    input_file = Path(path)
    if not input_file.exists():
        return {}
    with open(input_file, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Run input must be a JSON object, got {type(data).__name__}")
    logger.info(f"  📥  Loaded run input from {input_file}")
    return data


def load_site(sites_config: dict, site_name: str) -> SiteConfig:
    sites = sites_config.get("sites", {})
    if site_name not in sites:
        raise KeyError(f"Site '{site_name}' not found in config. Available: {', '.join(sites) or 'none'}")
    raw = sites[site_name]
    defaults = SiteConfig(name=site_name)
    return SiteConfig(
        name=site_name,
        url=raw.get("url", defaults.url),
        base_url=raw.get("base_url", defaults.base_url),
        selectors=dict(raw.get("selectors", {})),
        timeouts=dict(raw.get("timeouts", {})),
        pacing=dict(raw.get("pacing", {})),
        block_indicators=tuple(raw.get("block_indicators", defaults.block_indicators)),
        late_block_indicators=tuple(raw.get("late_block_indicators", defaults.late_block_indicators)),
    )


def load_credentials(environ=None) -> Optional[LoginCredentials]:
    environ = os.environ if environ is None else environ
    email = environ.get("OPENVC_EMAIL", "")
    password = environ.get("OPENVC_PASSWORD", "")
    if email and password:
        return LoginCredentials(email=email, password=password)
    return None


def _arg(args, name, default=None):
    value = getattr(args, name, None) if args is not None else None
    return default if value is None else value


def load_config(args=None, sites_path=SITES_PATH, site_name: str = "openvc", environ=None) -> CrawlConfig:
    """
    Build the run configuration.

    Priority (highest first): CLI flags → run input → sites.yaml → built-in defaults.
    """
    load_dotenv()
    environ = os.environ if environ is None else environ

    sites_config = load_yaml(sites_path)
    defaults = sites_config.get("defaults", {})
    site = load_site(sites_config, site_name)
    site_raw = sites_config["sites"][site_name]

    input_path = _arg(args, "input", str(DEFAULT_INPUT_PATH))
    run_input = load_input(input_path)

    start_urls = _arg(args, "start_url") or run_input.get("startUrls") or [site.url]
    if isinstance(start_urls, str):
        start_urls = [start_urls]

    max_pages = _arg(args, "max_pages") or run_input.get("maxPages") or site_raw.get("max_pages", DEFAULT_MAX_PAGES)

    export_to_json = _arg(args, "export")
    if export_to_json is None:
        export_to_json = run_input.get("exportToJson")
    if export_to_json is None:
        export_to_json = default_export_to_json(environ)

    headless = bool(_arg(args, "headless", False) or defaults.get("headless", False))
    login = bool(_arg(args, "login", False))
    credentials = load_credentials(environ)
    if login and credentials is None:
        logger.warning("  ⚠️  --login set but OPENVC_EMAIL / OPENVC_PASSWORD are missing, crawling anonymously")
        login = False

    config = CrawlConfig(
        site=site,
        start_urls=tuple(start_urls),
        max_pages=int(max_pages),
        export_to_json=bool(export_to_json),
        export_path=defaults.get("export_path", "data/investors.json"),
        proxy_configuration=run_input.get("proxyConfiguration"),
        headless=headless,
        max_concurrency=int(_arg(args, "max_concurrency") or defaults.get("max_concurrency", 1)),
        max_request_retries=int(defaults.get("max_request_retries", 3)),
        retry_backoff_s=float(defaults.get("retry_backoff_s", 2.0)),
        screenshots=bool(defaults.get("screenshots", True)),
        screenshot_dir=defaults.get("screenshot_dir", "data/screenshots"),
        storage_dir=environ.get(STORAGE_ENV) or defaults.get("storage_dir", "storage"),
        login=login,
        credentials=credentials,
        dry_run=bool(_arg(args, "dry_run", False)),
    )
    if config.max_pages < 1:
        raise ValueError(f"maxPages must be at least 1, got {config.max_pages}")
    return config
