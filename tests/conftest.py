"""Fakes compartidos: contexto de navegador y proceso sin Chrome."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest

from ml_inbound_scraper.config import TargetSite
from ml_inbound_scraper.core.navigation import NavigationDriver
from ml_inbound_scraper.core.session import Session
from ml_inbound_scraper.utils.cookies import CookieRecord

LINUX_UA = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36"
)


class FakeContext:
    """Contexto de navegador programable."""

    def __init__(
        self,
        *,
        cookies: Sequence[CookieRecord] = (),
        evaluations: Optional[Dict[str, Any]] = None,
        navigation_errors: Sequence[BaseException] = (),
        selector_present: bool = True,
    ) -> None:
        self.cookies: List[CookieRecord] = list(cookies)
        self.evaluations: Dict[str, Any] = dict(evaluations or {})
        self.navigation_errors: List[BaseException] = list(navigation_errors)
        self.selector_present = selector_present
        self.visited: List[str] = []
        self.navigate_calls = 0
        self.prepared: Optional[Dict[str, Any]] = None
        self.get_cookies_calls = 0
        self.closed = False
        self.on_navigate: Optional[Callable[[str], Any]] = None

    async def prepare(self, **kwargs: Any) -> None:
        self.prepared = kwargs

    async def set_cookies(self, records) -> None:
        self.cookies = list(records)

    async def get_cookies(self) -> List[CookieRecord]:
        self.get_cookies_calls += 1
        return list(self.cookies)

    async def navigate(self, url: str, *, wait_until: str = "complete", timeout: float = 60.0) -> None:
        self.navigate_calls += 1
        if self.navigation_errors:
            raise self.navigation_errors.pop(0)
        if self.on_navigate is not None:
            await self.on_navigate(url)
        self.visited.append(url)

    async def evaluate(self, expression: str) -> Any:
        for needle, value in self.evaluations.items():
            if needle in expression:
                if isinstance(value, BaseException):
                    raise value
                return value
        return None

    async def wait_for_selector(self, selector: str, timeout: float) -> bool:
        return self.selector_present

    async def close(self) -> None:
        self.closed = True


class FakeProcess:
    """Proceso que entrega contextos preparados de antemano."""

    def __init__(self, contexts: Sequence[FakeContext] = ()) -> None:
        self._pending = list(contexts)
        self.created: List[FakeContext] = []
        self.stopped = False

    async def create_context(self) -> FakeContext:
        context = self._pending.pop(0) if self._pending else FakeContext()
        self.created.append(context)
        return context

    async def stop(self) -> None:
        self.stopped = True


class RecordingSleep:
    """Reemplazo de ``asyncio.sleep`` que registra las esperas."""

    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)
        await asyncio.sleep(0)


def make_cookie(name: str, value: str = "v", domain: str = ".mercadolivre.com.br", **kwargs: Any) -> CookieRecord:
    return CookieRecord(name=name, value=value, domain=domain, **kwargs)


def make_session(context: FakeContext, path: Path, identifier: str = "ABC") -> Session:
    return Session(
        account_id=1,
        identifier=identifier,
        context=context,
        cookie_store_path=path,
        user_agent=LINUX_UA,
    )


def write_cookies(path: Path, cookies: Sequence[CookieRecord]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps([cookie.to_json() for cookie in cookies]), encoding="utf-8")
    return path


@pytest.fixture
def target() -> TargetSite:
    return TargetSite()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def navigator(sleep: RecordingSleep) -> NavigationDriver:
    return NavigationDriver(max_attempts=3, retry_delay=5.0, timeout=1.0, sleep=sleep)
