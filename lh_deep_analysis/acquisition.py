"""
Report acquisition: PageSpeed Insights over HTTP, or a local Lighthouse run
against a pooled headless Chromium.

Nothing here is used by the analysis modules; they only ever see the report
these functions return.
"""

from __future__ import annotations

import json
import os
import shutil
import socket
import subprocess
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterator, Protocol
from urllib.parse import urlparse, urlunparse

import requests

PAGESPEED_ENDPOINT = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"
DEFAULT_CATEGORIES = ("performance", "accessibility", "best-practices", "seo")
CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-first-run",
    "--disable-extensions",
]


def normalize_url(raw: str) -> str:
    value = raw.strip()
    parsed = urlparse(value)
    if not parsed.scheme:
        value = f"https://{value}"
        parsed = urlparse(value)
    if parsed.scheme not in ("http", "https"):
        raise ValueError(f"Unsupported URL scheme: {parsed.scheme}")
    if not parsed.netloc:
        raise ValueError(f"Invalid URL: {raw}")
    return urlunparse((parsed.scheme, parsed.netloc, parsed.path or "/", "", parsed.query, ""))


def fetch_pagespeed_report(
    target_url: str,
    strategy: str = "mobile",
    timeout: int = 60,
    api_key: str = "",
    categories: tuple[str, ...] = DEFAULT_CATEGORIES,
) -> dict[str, Any]:
    params: dict[str, Any] = {
        "url": target_url,
        "strategy": strategy,
        "category": list(categories),
        "locale": "en_US",
    }
    if api_key:
        params["key"] = api_key
    try:
        resp = requests.get(PAGESPEED_ENDPOINT, params=params, timeout=max(30, timeout))
    except requests.exceptions.RequestException as exc:
        return {"status": "error", "reason": str(exc), "http_status": None}
    if resp.status_code != 200:
        reason = f"HTTP {resp.status_code}"
        try:
            payload = resp.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            err = payload.get("error", {})
            if isinstance(err, dict) and err.get("message"):
                reason = f"{reason}: {err['message']}"
        return {"status": "error", "reason": reason, "http_status": resp.status_code}
    try:
        payload = resp.json()
    except ValueError as exc:
        return {"status": "error", "reason": f"Invalid JSON: {exc}", "http_status": 200}
    report = payload.get("lighthouseResult") if isinstance(payload, dict) else None
    if not isinstance(report, dict):
        return {"status": "error", "reason": "Response has no lighthouseResult", "http_status": 200}
    return {"status": "ok", "report": report, "http_status": 200}


class Browser(Protocol):
    def close(self) -> None: ...


class BrowserLauncher(Protocol):
    def launch(self, port: int, user_data_dir: Path) -> Browser: ...

    def stop(self) -> None: ...


@dataclass
class BrowserHandle:
    browser: Browser
    port: int
    user_data_dir: Path


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return int(sock.getsockname()[1])


class PlaywrightLauncher:
    """Launches headless Chromium with a remote debugging port via Playwright.

    The sync Playwright API is bound to the thread that started it, so every
    launch must come from that thread; a launch from any other thread raises
    ``RuntimeError``. Pools shared between threads need their own launcher.
    """

    def __init__(self) -> None:
        self._playwright: Any = None
        self._owner: int | None = None

    def launch(self, port: int, user_data_dir: Path) -> Browser:
        if self._playwright is None:
            from playwright.sync_api import sync_playwright

            self._playwright = sync_playwright().start()
            self._owner = threading.get_ident()
        elif threading.get_ident() != self._owner:
            raise RuntimeError("PlaywrightLauncher can only launch from the thread that started Playwright")
        return self._playwright.chromium.launch_persistent_context(
            str(user_data_dir),
            headless=True,
            args=[*CHROMIUM_ARGS, f"--remote-debugging-port={port}"],
        )

    def stop(self) -> None:
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None
            self._owner = None


class BrowserPool:
    """Bounded pool of browser instances.

    Handles are reused once released. When every browser is busy, ``acquire``
    waits for a release (or ``timeout`` seconds, then raises ``TimeoutError``).
    ``close_all`` closes every browser, removes their profile directories and
    may be called any number of times.
    """

    def __init__(
        self,
        max_browsers: int = 5,
        user_data_dir: str | Path | None = None,
        launcher: BrowserLauncher | None = None,
        port_factory: Callable[[], int] = free_port,
    ) -> None:
        if max_browsers < 1:
            raise ValueError("max_browsers must be >= 1")
        base = user_data_dir or os.getenv("LIGHTHOUSE_USER_DATA_DIR") or Path.cwd() / ".lhdata"
        self.max_browsers = max_browsers
        self.user_data_dir = Path(base).resolve()
        self._launcher = launcher or PlaywrightLauncher()
        self._port_factory = port_factory
        self._handles: list[BrowserHandle] = []
        self._available: list[BrowserHandle] = []
        self._launching = 0
        self._next_index = 0
        self._closed = False
        self._cond = threading.Condition()

    @property
    def total_count(self) -> int:
        with self._cond:
            return len(self._handles)

    @property
    def active_count(self) -> int:
        with self._cond:
            return len(self._handles) - len(self._available)

    def acquire(self, timeout: float | None = None) -> BrowserHandle:
        with self._cond:
            while True:
                if self._closed:
                    raise RuntimeError("Browser pool is closed")
                if self._available:
                    return self._available.pop()
                if len(self._handles) + self._launching < self.max_browsers:
                    self._launching += 1
                    index = self._next_index
                    self._next_index += 1
                    break
                if not self._cond.wait(timeout=timeout):
                    raise TimeoutError("No browser became available in time")

        try:
            profile_dir = self.user_data_dir / f"browser-{index}"
            profile_dir.mkdir(parents=True, exist_ok=True)
            port = self._port_factory()
            handle = BrowserHandle(browser=self._launcher.launch(port, profile_dir), port=port, user_data_dir=profile_dir)
        except BaseException:
            with self._cond:
                self._launching -= 1
                self._cond.notify()
            raise

        with self._cond:
            self._launching -= 1
            closed = self._closed
            if not closed:
                self._handles.append(handle)
        if closed:
            handle.browser.close()
            shutil.rmtree(profile_dir, ignore_errors=True)
            raise RuntimeError("Browser pool is closed")
        return handle

    def release(self, handle: BrowserHandle) -> None:
        with self._cond:
            if handle not in self._handles or handle in self._available:
                return
            self._available.append(handle)
            self._cond.notify()

    @contextmanager
    def browser(self, timeout: float | None = None) -> Iterator[BrowserHandle]:
        handle = self.acquire(timeout=timeout)
        try:
            yield handle
        finally:
            self.release(handle)

    def close_all(self) -> None:
        with self._cond:
            handles = list(self._handles)
            self._handles.clear()
            self._available.clear()
            self._closed = True
            self._cond.notify_all()

        errors: list[str] = []
        for handle in handles:
            try:
                handle.browser.close()
            except Exception as exc:
                errors.append(str(exc))
            shutil.rmtree(handle.user_data_dir, ignore_errors=True)
        self._launcher.stop()
        if errors:
            raise RuntimeError(f"Failed to close {len(errors)} browser(s): {errors[0]}")

    def __enter__(self) -> BrowserPool:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close_all()


def run_lighthouse(
    target_url: str,
    pool: BrowserPool,
    *,
    categories: tuple[str, ...] = DEFAULT_CATEGORIES,
    form_factor: str = "mobile",
    timeout: int = 120,
    lighthouse_bin: str = "lighthouse",
) -> dict[str, Any]:
    cmd = [
        lighthouse_bin,
        target_url,
        "--output=json",
        "--quiet",
        f"--only-categories={','.join(categories)}",
        f"--form-factor={form_factor}",
    ]
    if form_factor == "desktop":
        cmd.append("--preset=desktop")

    try:
        with pool.browser(timeout=timeout) as handle:
            try:
                proc = subprocess.run(
                    [*cmd, f"--port={handle.port}"],
                    capture_output=True,
                    text=True,
                    timeout=timeout,
                )
            except subprocess.TimeoutExpired:
                return {"status": "failed", "reason": "timeout"}
            except OSError as exc:
                return {"status": "failed", "reason": str(exc)}
    except Exception as exc:
        return {"status": "failed", "reason": f"Browser unavailable: {exc}"}

    if proc.returncode != 0:
        tail = "\n".join(line for line in (proc.stderr or "").splitlines()[-5:] if line.strip())
        return {"status": "failed", "reason": f"lighthouse exited with {proc.returncode}", "stderr_tail": tail}
    try:
        report = json.loads(proc.stdout)
    except json.JSONDecodeError as exc:
        return {"status": "failed", "reason": f"Invalid JSON: {exc}"}
    if not isinstance(report, dict):
        return {"status": "failed", "reason": "Lighthouse output is not an object"}
    return {"status": "ok", "report": report}


def pagespeed_provider(strategy: str = "mobile", timeout: int = 60, api_key: str = "") -> Callable[[str], dict[str, Any]]:
    def provide(target_url: str) -> dict[str, Any]:
        result = fetch_pagespeed_report(target_url, strategy=strategy, timeout=timeout, api_key=api_key)
        if result["status"] != "ok":
            raise RuntimeError(f"PageSpeed request failed: {result.get('reason', 'unknown error')}")
        return result["report"]

    return provide


def lighthouse_provider(pool: BrowserPool, form_factor: str = "mobile", timeout: int = 120) -> Callable[[str], dict[str, Any]]:
    def provide(target_url: str) -> dict[str, Any]:
        result = run_lighthouse(target_url, pool, form_factor=form_factor, timeout=timeout)
        if result["status"] != "ok":
            raise RuntimeError(f"Lighthouse failed: {result.get('reason', 'unknown error')}")
        return result["report"]

    return provide
