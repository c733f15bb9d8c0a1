"""
AI client resolution: credential pool, round-robin rotation and transports.

Every generation request asks ``ClientResolver.get_transport()`` how to reach
the provider:

- keys configured: a ``DirectTransport`` bound to the next key in rotation
- no keys: a ``ProxyTransport`` that posts the request to the backend's
  ``/api/ai/generate`` endpoint, which holds its own server key
"""

import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Iterable

import anthropic
import httpx

from scholar.core.config import settings
from scholar.core.exceptions import ConfigurationError, ProviderError
from scholar.core.logging_config import get_logger

logger = get_logger(__name__)


class CredentialPool:
    """Ordered, deduplicated, immutable set of API keys."""

    def __init__(self, candidates: Iterable[Any] = ()):
        keys: list[str] = []
        for candidate in candidates:
            if not isinstance(candidate, str) or not candidate.strip():
                continue
            if candidate not in keys:
                keys.append(candidate)
        self._keys = tuple(keys)

    @classmethod
    def from_settings(cls, config=settings) -> "CredentialPool":
        return cls(config.credential_sources())

    def __len__(self) -> int:
        return len(self._keys)

    def __getitem__(self, index: int) -> str:
        return self._keys[index]

    def __iter__(self):
        return iter(self._keys)

    @property
    def is_empty(self) -> bool:
        return not self._keys

    def __repr__(self) -> str:
        # Never print key material
        return f"CredentialPool(size={len(self._keys)})"


class RotationCursor:
    """Index of the next key to use. Advances are serialized by a lock."""

    def __init__(self):
        self._index = 0
        self._lock = threading.Lock()

    @property
    def position(self) -> int:
        return self._index

    def advance(self, size: int) -> int:
        """Return the current index, then move to the next one (only when size > 1)."""
        with self._lock:
            if size <= 0:
                raise ValueError("cannot rotate over an empty pool")
            index = self._index % size
            self._index = (index + 1) % size if size > 1 else index
            return index


async def call_provider(api_key: str, request: dict) -> str:
    """
    Send a Messages request to the provider with ``api_key`` and return its text.

    Args:
        api_key: Provider credential
        request: Messages API parameters (model, max_tokens, system, messages, ...)

    Returns:
        Concatenated text blocks of the reply ("" when there are none)
    """
    params = dict(request)
    params.setdefault("model", settings.claude_model)
    params.setdefault("max_tokens", settings.ai_max_tokens)

    start_time = time.time()
    logger.debug(f"Provider call | model={params['model']} | max_tokens={params['max_tokens']}")

    client = anthropic.AsyncAnthropic(api_key=api_key)
    try:
        message = await client.messages.create(**params)
    finally:
        await client.close()

    duration_ms = (time.time() - start_time) * 1000
    logger.info(
        f"Provider call completed | duration={duration_ms:.2f}ms | "
        f"input_tokens={message.usage.input_tokens} | output_tokens={message.usage.output_tokens}"
    )
    return "".join(block.text for block in message.content if block.type == "text")


class AITransport(ABC):
    """How a generation request reaches the provider."""

    @abstractmethod
    async def generate(self, request: dict) -> str:
        ...


class DirectTransport(AITransport):
    def __init__(self, api_key: str):
        self.api_key = api_key

    async def generate(self, request: dict) -> str:
        return await call_provider(self.api_key, request)

    def __repr__(self) -> str:
        return "DirectTransport()"


def _json_field(response: httpx.Response, key: str):
    """String ``key`` of a JSON object body, or None when the body is anything else."""
    try:
        body = response.json()
    except ValueError:
        return None
    value = body.get(key) if isinstance(body, dict) else None
    return value if isinstance(value, str) else None


class ProxyTransport(AITransport):
    def __init__(self, url: str, timeout: float = 120.0):
        self.url = url
        self.timeout = timeout

    async def generate(self, request: dict) -> str:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(self.url, json=request)
            except httpx.HTTPError as e:
                logger.error(f"AI proxy unreachable | url={self.url} | error={e}")
                raise ProviderError("Server AI proxy failed") from e

        if response.is_error:
            message = _json_field(response, "message")
            logger.error(f"AI proxy returned {response.status_code} | message={message}")
            raise ProviderError(message or "Server AI proxy failed")

        text = _json_field(response, "text")
        if text is None:
            logger.error(f"AI proxy returned an unreadable body | status={response.status_code}")
            raise ProviderError("Server AI proxy failed")
        return text

    def __repr__(self) -> str:
        return f"ProxyTransport(url={self.url!r})"


class ClientResolver:
    """Chooses a transport per request, rotating round-robin over the pool."""

    def __init__(
        self,
        pool: CredentialPool,
        cursor: RotationCursor | None = None,
        proxy_url: str = settings.ai_proxy_url,
        proxy_timeout: float = settings.ai_proxy_timeout_seconds,
    ):
        self.pool = pool
        self.cursor = cursor or RotationCursor()
        self.proxy_url = proxy_url
        self.proxy_timeout = proxy_timeout

        if pool.is_empty:
            logger.warning("No AI API keys configured, generation requests will use the server proxy")

    @property
    def uses_proxy(self) -> bool:
        return self.pool.is_empty

    def next_credential(self) -> str:
        """Key at the cursor; advances the cursor when the pool has more than one key."""
        if self.pool.is_empty:
            raise ConfigurationError(
                "No AI API keys configured. Set AI_API_KEY_1..5 or API_KEY..API_KEY_5, "
                "or configure ANTHROPIC_API_KEY on the server proxy."
            )
        size = len(self.pool)
        index = self.cursor.advance(size)
        if size > 1:
            logger.debug(f"Rotating key: using index {index} (total keys: {size})")
        return self.pool[index]

    def get_transport(self) -> AITransport:
        if self.uses_proxy:
            return ProxyTransport(self.proxy_url, self.proxy_timeout)
        return DirectTransport(self.next_credential())

    def diagnostic_state(self) -> dict:
        return {
            "keyCount": len(self.pool),
            "currentIndex": self.cursor.position,
            "useServerProxy": self.uses_proxy,
        }


_resolver: ClientResolver | None = None


def get_resolver() -> ClientResolver:
    """Process-wide resolver, built from settings on first use."""
    global _resolver
    if _resolver is None:
        _resolver = ClientResolver(CredentialPool.from_settings())
    return _resolver
