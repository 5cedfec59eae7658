"""
╔══════════════════════════════════════════════════════════════╗
║                                                              ║
║   🕷️  CRAWL ENGINE — Investor Directory Scraper              ║
║                                                              ║
║   Pages through the OpenVC investor table, stores every      ║
║   investor row in the run dataset and exports it as JSON.    ║
║                                                              ║
║   Usage:                                                     ║
║     python engine.py                    # Crawl from page 1  ║
║     python engine.py --max-pages 5      # Stop after page 5  ║
║     python engine.py --dry-run          # Test without save  ║
║     python engine.py --login            # Sign in first      ║
║                                                              ║
╚══════════════════════════════════════════════════════════════╝
"""

import asyncio
import argparse
import logging
import time
from dataclasses import dataclass
from datetime import datetime

from playwright.async_api import async_playwright

from adapters.auth import login_to_openvc
from adapters.base import CrawlState
from adapters.openvc import OpenVCAdapter
from crawl_config import CrawlConfig, load_config
from output.dataset import Dataset
from output.json_writer import JSONWriter
from stealth import FingerprintManager, HumanBehavior, LAUNCH_ARGS, ProxyManager

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────────
#  Adapter Registry
# ──────────────────────────────────────────────────

ADAPTER_MAP = {
    "openvc": OpenVCAdapter,
}


@dataclass
class CrawlRequest:
    url: str
    retry_count: int = 0


# ──────────────────────────────────────────────────
#  Engine
# ──────────────────────────────────────────────────

class CrawlEngine:
    """
    Main orchestrator. Wires together:
    - Run config → Adapter
    - Stealth layer (fingerprint, pacing, proxies)
    - Request queue with a worker cap and retry accounting
    - Output (dataset, JSON export)
    """

    def __init__(self, config: CrawlConfig, adapter=None):
        self.config = config
        self.fingerprint_mgr = FingerprintManager()
        self.behavior = HumanBehavior(pacing=config.site.pacing, speed_factor=0 if config.dry_run else 1.0)
        self.proxy_mgr = ProxyManager(config.proxies_path, config.proxy_configuration)
        self.adapter = adapter or ADAPTER_MAP[config.site.name](config.site, stealth_module=self.behavior)
        self.dataset = Dataset(config.storage_dir, persist=not config.dry_run)
        self.json_writer = JSONWriter(config.export_path)
        self.state = CrawlState(max_pages=config.max_pages)
        self.failed_requests = []
        self._seen_urls = set()
        self._storage_state = None

    async def run(self):
        """Execute the full crawl."""
        start_time = time.time()
        self._print_banner()
        self.dataset.purge()

        if not self.proxy_mgr.enabled:
            logger.warning("  ⚠️  Proxy disabled, requests may be blocked")

        async with async_playwright() as p:
            browser = await p.chromium.launch(headless=self.config.headless, args=LAUNCH_ARGS)
            try:
                if self.config.login:
                    await self._login(browser)
                await self.crawl(browser)
            finally:
                await browser.close()

        self._export()
        self._print_summary(time.time() - start_time)
        return self.state

    async def crawl(self, browser):
        """Drain the request queue with up to max_concurrency pages in flight."""
        queue = asyncio.Queue()
        for url in self.config.start_urls:
            self._enqueue(queue, url)
        logger.info(f"  🚀  Starting crawl with URLs: {', '.join(self.config.start_urls)}")

        workers = [
            asyncio.create_task(self._worker(browser, queue))
            for _ in range(max(1, self.config.max_concurrency))
        ]
        try:
            await queue.join()
        finally:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

    def _enqueue(self, queue: asyncio.Queue, url: str) -> bool:
        if url in self._seen_urls:
            return False
        self._seen_urls.add(url)
        queue.put_nowait(CrawlRequest(url))
        return True

    async def _worker(self, browser, queue: asyncio.Queue):
        while True:
            request = await queue.get()
            try:
                await self._handle_request(browser, queue, request)
            except Exception as e:
                self._failed_request_handler(request, e)
            finally:
                queue.task_done()

    async def _handle_request(self, browser, queue: asyncio.Queue, request: CrawlRequest):
        """Process one page in a fresh context. Failed pages are retried with backoff."""
        context = None
        try:
            context = await self._new_context(browser)
            page = await context.new_page()
            next_url = await self.adapter.process_page(
                page,
                request.url,
                self.dataset,
                self.state,
                screenshot_dir=self.config.screenshot_dir if self.config.screenshots else None,
            )
            if next_url and self._enqueue(queue, next_url):
                logger.info(f"  📥  Enqueued {next_url}")
        except Exception as e:
            request.retry_count += 1
            if request.retry_count <= self.config.max_request_retries:
                delay = self.config.retry_backoff_s * (2 ** (request.retry_count - 1))
                logger.warning(
                    f"  🔁  Retrying {request.url} in {delay:.0f}s "
                    f"({request.retry_count}/{self.config.max_request_retries})"
                )
                self.proxy_mgr.rotate()
                await asyncio.sleep(delay)
                queue.put_nowait(request)
            else:
                self._failed_request_handler(request, e)
        finally:
            if context is not None:
                await context.close()

    def _failed_request_handler(self, request: CrawlRequest, error: Exception):
        self.state.pages_failed += 1
        self.failed_requests.append(request.url)
        logger.error(f"  ❌  Request {request.url} failed after retries: {error}")

    async def _new_context(self, browser):
        fingerprint = self.fingerprint_mgr.generate()
        context_kwargs = self.fingerprint_mgr.get_context_kwargs(fingerprint)
        proxy = self.proxy_mgr.get_proxy()
        if proxy:
            context_kwargs["proxy"] = proxy
        if self._storage_state:
            context_kwargs["storage_state"] = self._storage_state

        context = await browser.new_context(**context_kwargs)
        await self.fingerprint_mgr.apply_js_overrides(context)
        return context

    async def _login(self, browser):
        """Sign in once and reuse the session cookies for every page context."""
        context = await self._new_context(browser)
        try:
            page = await context.new_page()
            if await login_to_openvc(page, self.config.credentials):
                self._storage_state = await context.storage_state()
            else:
                logger.warning("  ⚠️  Continuing without a logged-in session")
        finally:
            await context.close()

    def _export(self):
        if self.config.dry_run:
            logger.info("  🧪  DRY RUN — no files written")
            return
        if not self.config.export_to_json:
            return
        logger.info("  📦  Exporting dataset to JSON...")
        self.json_writer.write(self.dataset.get_data())

    def _print_banner(self):
        print()
        print("  ╔══════════════════════════════════════════╗")
        print("  ║   🕷️  CRAWL ENGINE                       ║")
        print("  ║   Investor Directory Scraper             ║")
        print("  ╚══════════════════════════════════════════╝")
        print()
        print(f"  ⏰  {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        print(f"  🎯  Site: {self.config.site.name}")
        print(f"  📄  Max pages: {self.config.max_pages}")
        print(f"  🔒  Proxy: {'ON' if self.proxy_mgr.enabled else 'OFF'}")
        print(f"  🖥️  Headless: {'YES' if self.config.headless else 'NO'}")
        print(f"  💾  Export JSON: {'YES' if self.config.export_to_json else 'NO'}")
        print()

    def _print_summary(self, elapsed: float):
        print(f"\n{'='*60}")
        print("  📊  CRAWL SUMMARY")
        print(f"{'='*60}")
        print(f"  ⏱️  Duration: {elapsed:.1f}s")
        print(f"  📄  Pages OK: {self.state.pages_ok}")
        print(f"  ❌  Pages failed: {self.state.pages_failed}")
        print(f"  📝  Investors saved: {self.state.record_count}")
        print(f"  🎭  Fingerprints used: {self.fingerprint_mgr.stats['total_fingerprints_generated']}")
        print(f"  🔒  Proxy requests: {self.proxy_mgr.stats['total_requests_proxied']}")
        print()
        print("  ✅  Scraping completed!")


# ──────────────────────────────────────────────────
#  CLI
# ──────────────────────────────────────────────────

def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="🕷️ CRAWL — Investor Directory Scraper",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--input", type=str, default=None,
        help="Run input JSON (startUrls, maxPages, exportToJson, proxyConfiguration). "
             "Default: storage/INPUT.json if present",
    )
    parser.add_argument(
        "--start-url", action="append", default=None,
        help="Start URL (repeatable). Overrides startUrls from the run input",
    )
    parser.add_argument(
        "--max-pages", type=int, default=None,
        help="Last page number to crawl (default: 1000)",
    )
    parser.add_argument(
        "--export", action=argparse.BooleanOptionalAction, default=None,
        help="Write data/investors.json at the end (default: on unless CRAWL_STORAGE_DIR is set)",
    )
    parser.add_argument(
        "--max-concurrency", type=int, default=None,
        help="Pages in flight at once (default: 1)",
    )
    parser.add_argument(
        "--headless", action="store_true",
        help="Run browser in headless mode (no visible window)",
    )
    parser.add_argument(
        "--login", action="store_true",
        help="Sign in with OPENVC_EMAIL / OPENVC_PASSWORD before crawling",
    )
    parser.add_argument(
        "--dry-run", action="store_true",
        help="Run crawl but don't write the dataset or export files",
    )
    parser.add_argument(
        "--verbose", action="store_true",
        help="Debug logging",
    )
    return parser.parse_args(argv)


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


async def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.verbose)
    config = load_config(args)
    engine = CrawlEngine(config)
    await engine.run()


def cli():
    asyncio.run(main())


if __name__ == "__main__":
    cli()
