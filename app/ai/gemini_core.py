"""
Gemini API client with key rotation
Rotates across configured keys, respects per-key RPM windows and backs off on 429s.
"""

import asyncio
import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

import google.generativeai as genai

logger = logging.getLogger(__name__)


class GeminiUnavailable(Exception):
    """No key can serve the request (none configured, all exhausted or rate limited)"""


@dataclass
class KeyStats:
    """Usage window for one API key"""
    key_name: str
    rpm_limit: int = 15
    requests_this_minute: deque = field(default_factory=lambda: deque(maxlen=300))
    requests_today: int = 0
    last_reset: datetime = field(default_factory=datetime.now)
    last_429_time: Optional[float] = None
    consecutive_429s: int = 0

    def _backoff_seconds(self) -> float:
        return min(60 * (2 ** self.consecutive_429s), 300)

    def can_make_request(self) -> bool:
        now = time.time()

        while self.requests_this_minute and now - self.requests_this_minute[0] > 60:
            self.requests_this_minute.popleft()

        if len(self.requests_this_minute) >= self.rpm_limit:
            return False

        if self.last_reset.date() != datetime.now().date():
            self.requests_today = 0
            self.last_reset = datetime.now()

        if self.last_429_time and now - self.last_429_time < self._backoff_seconds():
            return False

        return True

    def record_request(self):
        self.requests_this_minute.append(time.time())
        self.requests_today += 1
        self.consecutive_429s = 0

    def record_429(self):
        self.last_429_time = time.time()
        self.consecutive_429s += 1


def _is_rate_limit_error(error: Exception) -> bool:
    error_str = str(error)
    return "429" in error_str or "RESOURCE_EXHAUSTED" in error_str or "quota" in error_str.lower()


class GeminiClient:
    """
    Thin async wrapper over google-generativeai.

    The SDK call blocks, so it runs in a worker thread. Callers own the timeout
    budget; `generate` never sleeps waiting for a rate-limited key, it rotates to the
    next one and raises GeminiUnavailable when none is usable.
    """

    def __init__(self, api_keys: List[str], model_name: str, api_version: str = "v1beta",
                 rpm_limit: int = 15, max_retries: int = 3):
        self.api_keys = list(api_keys)
        self.model_name = model_name
        self.api_version = api_version
        self.max_retries = max_retries
        self.lock = threading.RLock()
        self.key_index = 0
        self.key_stats = [
            KeyStats(key_name=f"key_{i + 1}", rpm_limit=rpm_limit)
            for i in range(len(self.api_keys))
        ]

    @property
    def configured(self) -> bool:
        return bool(self.api_keys)

    def _get_next_available_key(self) -> Optional[Tuple[str, KeyStats]]:
        with self.lock:
            checked = 0
            while checked < len(self.key_stats):
                stats = self.key_stats[self.key_index]
                key = self.api_keys[self.key_index]
                self.key_index = (self.key_index + 1) % len(self.api_keys)
                if stats.can_make_request():
                    return key, stats
                checked += 1
            return None

    def _call(self, api_key: str, prompt: str) -> str:
        with self.lock:
            genai.configure(api_key=api_key)
            model = genai.GenerativeModel(self.model_name)
        response = model.generate_content(prompt)
        return response.text.strip()

    def generate_sync(self, prompt: str) -> str:
        if not self.configured:
            raise GeminiUnavailable("No Gemini API key configured")

        for _ in range(self.max_retries):
            selected = self._get_next_available_key()
            if selected is None:
                raise GeminiUnavailable("All Gemini API keys are rate limited")

            api_key, stats = selected
            try:
                text = self._call(api_key, prompt)
            except Exception as e:
                if _is_rate_limit_error(e):
                    with self.lock:
                        stats.record_429()
                    logger.warning(f"⚠️ {stats.key_name} hit rate limit (429), trying next key")
                    continue
                raise

            with self.lock:
                stats.record_request()
            logger.debug(
                f"✅ {stats.key_name} | RPM: {len(stats.requests_this_minute)}/{stats.rpm_limit}"
                f" | Daily: {stats.requests_today}"
            )
            return text

        raise GeminiUnavailable(f"Failed after {self.max_retries} attempts across all keys")

    async def generate(self, prompt: str) -> str:
        return await asyncio.to_thread(self.generate_sync, prompt)
