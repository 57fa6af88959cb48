"""Title / description / colour suggestions for a URL.

The online client asks the Gemini API; without credentials, or on any
failure, a fixed fallback suggestion is returned instead.
"""

import json
import logging
import re
import sys
import threading
import time
from abc import ABC, abstractmethod
from contextlib import nullcontext
from dataclasses import dataclass

import requests

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Terminal progress indicator
# ---------------------------------------------------------------------------

class Progress:
    """Context manager that animates ``message`` on stderr with elapsed seconds."""

    DOTS = "⣾⣽⣻⢿⡿⣟⣯⣷"

    def __init__(self, message: str):
        self.message = message
        self._stop = threading.Event()
        self._worker = threading.Thread(target=self._run, daemon=True)

    def __enter__(self) -> "Progress":
        self._worker.start()
        return self

    def __exit__(self, *exc) -> None:
        self._stop.set()
        self._worker.join()
        sys.stderr.write("\r\033[K")
        sys.stderr.flush()

    def _run(self) -> None:
        started = time.monotonic()
        tick = 0
        while not self._stop.wait(0.12):
            elapsed = time.monotonic() - started
            sys.stderr.write(f"\r  {self.DOTS[tick % len(self.DOTS)]} {self.message} ({elapsed:.0f}s)")
            sys.stderr.flush()
            tick += 1


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Suggestion:
    title: str
    description: str
    suggested_color: str


FALLBACK_SUGGESTION = Suggestion(
    title="New QR Code",
    description="Scan to open the link.",
    suggested_color="#000000",
)

_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def normalize_hex_color(value: str) -> str | None:
    """Return ``#rrggbb`` for a 3- or 6-digit hex colour, else None."""
    match = _HEX_COLOR.match(value.strip()) if isinstance(value, str) else None
    if not match:
        return None
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(c * 2 for c in digits)
    return "#" + digits.lower()


# ---------------------------------------------------------------------------
# Retries
# ---------------------------------------------------------------------------

DEFAULT_MAX_RETRIES = 2
DEFAULT_TIMEOUT_SECONDS = 20


def _with_retries(call, attempts: int = DEFAULT_MAX_RETRIES, progress_message: str | None = None):
    """Run ``call`` up to ``attempts`` times, sleeping 2s, 4s, ... between tries.

    Raises:
        The error from the final attempt.
    """
    attempts = max(1, attempts)
    for attempt in range(1, attempts + 1):
        indicator = Progress(progress_message) if progress_message else nullcontext()
        try:
            with indicator:
                return call()
        except (requests.RequestException, ValueError) as e:
            if attempt == attempts:
                raise
            delay = 2 ** attempt
            logger.warning("Suggestion attempt %d/%d failed: %s (retrying in %ds)", attempt, attempts, e, delay)
            time.sleep(delay)



# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------

class BaseSuggestionClient(ABC):
    """Abstract base class for suggestion backends."""

    @abstractmethod
    def suggest(self, url: str) -> Suggestion:
        """Suggest a title, description and accent colour for ``url``.

        Implementations never raise; they return FALLBACK_SUGGESTION instead.
        """
        ...

    @abstractmethod
    def name(self) -> str:
        ...


class OfflineSuggestionClient(BaseSuggestionClient):
    """Used when no credentials are configured. Makes no network calls."""

    def name(self) -> str:
        return "Offline (fallback)"

    def suggest(self, url: str) -> Suggestion:
        return FALLBACK_SUGGESTION


class GeminiSuggestionClient(BaseSuggestionClient):
    """Client for the Gemini ``generateContent`` REST endpoint.

    Asks for a JSON object with ``title``, ``description`` and
    ``suggestedColor`` and validates each field.
    """

    ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

    PROMPT = (
        "You are helping design a printed QR code that opens this link: {url}\n"
        "Reply with JSON only: a short catchy title (max 6 words), a one-sentence "
        "description of what the visitor will find, and a dark hex colour that "
        "fits the brand and scans well on white."
    )

    RESPONSE_SCHEMA = {
        "type": "OBJECT",
        "properties": {
            "title": {"type": "STRING"},
            "description": {"type": "STRING"},
            "suggestedColor": {"type": "STRING"},
        },
        "required": ["title", "description", "suggestedColor"],
    }

    def __init__(self, api_key: str, model: str = "gemini-2.5-flash",
                 timeout: float = DEFAULT_TIMEOUT_SECONDS, max_retries: int = DEFAULT_MAX_RETRIES,
                 show_progress: bool = False, session: requests.Session | None = None):
        if not api_key:
            raise ValueError("GeminiSuggestionClient requires an API key.")
        self._api_key = api_key
        self._model = model
        self._timeout = timeout
        self._max_retries = max_retries
        self._show_progress = show_progress
        self._session = session or requests.Session()

    def name(self) -> str:
        return f"Gemini ({self._model})"

    def _call(self, url: str) -> dict:
        response = self._session.post(
            self.ENDPOINT.format(model=self._model),
            headers={"x-goog-api-key": self._api_key, "Content-Type": "application/json"},
            json={
                "contents": [{"parts": [{"text": self.PROMPT.format(url=url)}]}],
                "generationConfig": {
                    "responseMimeType": "application/json",
                    "responseSchema": self.RESPONSE_SCHEMA,
                },
            },
            timeout=self._timeout,
        )
        response.raise_for_status()
        return response.json()

    @staticmethod
    def _parse(payload: dict) -> Suggestion:
        try:
            text = payload["candidates"][0]["content"]["parts"][0]["text"]
            data = json.loads(text)
        except (KeyError, IndexError, TypeError, json.JSONDecodeError) as e:
            raise ValueError(f"Malformed suggestion response: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Suggestion response is not a JSON object: {text[:80]!r}")

        title = str(data.get("title") or "").strip()
        description = str(data.get("description") or "").strip()
        color = normalize_hex_color(str(data.get("suggestedColor") or ""))
        return Suggestion(
            title=title or FALLBACK_SUGGESTION.title,
            description=description or FALLBACK_SUGGESTION.description,
            suggested_color=color or FALLBACK_SUGGESTION.suggested_color,
        )

    def suggest(self, url: str) -> Suggestion:
        message = "Asking Gemini for suggestions..." if self._show_progress else None
        try:
            payload = _with_retries(lambda: self._call(url), self._max_retries, message)
            return self._parse(payload)
        except (requests.RequestException, ValueError) as e:
            logger.warning("Suggestion service failed, using fallback: %s", e)
            return FALLBACK_SUGGESTION


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def get_client(api_key: str | None = None, **kwargs) -> BaseSuggestionClient:
    """Return the Gemini client when a key is available, else the offline one."""
    if not api_key:
        logger.info("No suggestion API key configured; using fallback suggestions")
        return OfflineSuggestionClient()
    return GeminiSuggestionClient(api_key, **kwargs)


def suggest(url: str, api_key: str | None = None, **kwargs) -> Suggestion:
    return get_client(api_key, **kwargs).suggest(url)
