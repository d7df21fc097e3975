"""
Text generator client (OpenAI chat completions).

ModelHandle remembers which model last worked so that every request does
not list the account's models again.  One handle is created per process
(DEFAULT_MODEL_HANDLE) and can be replaced by passing another to
OpenAIGenerator.  Lifecycle:

    empty → resolve() picks the first preferred model the account offers
          (or the fallback) and caches it for ``ttl_sec``
    cached → returned as-is until it expires
    ModelUnavailableError → invalidate() empties it; the next request
          resolves again

Environment:
    OPENAI_API_KEY           required
    SESSION_PLANNER_MODEL    optional, pins the model and skips resolution
"""

import logging
import os
import time
from typing import Callable, Sequence

import openai
from openai import AsyncOpenAI

from ..core.config import FALLBACK_MODEL, MODEL_CACHE_TTL_SEC, PREFERRED_MODELS
from ..core.engine.config_loader import config_section
from ..core.errors import ConfigurationError, GeneratorIOError, ModelUnavailableError

logger = logging.getLogger(__name__)

API_KEY_ENV = "OPENAI_API_KEY"
MODEL_ENV = "SESSION_PLANNER_MODEL"

SYSTEM_PROMPT = (
    "You are a strength and conditioning coach. "
    "Reply with valid JSON only, exactly in the requested format."
)


class ModelHandle:
    """Cached name of the generator model that last worked."""

    def __init__(
        self,
        preferred: Sequence[str] | None = None,
        fallback: str | None = None,
        ttl_sec: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        section = config_section("generator")
        self.preferred = tuple(preferred or section.get("preferred_models") or PREFERRED_MODELS)
        self.fallback = fallback or section.get("fallback_model") or FALLBACK_MODEL
        self.ttl_sec = float(
            ttl_sec if ttl_sec is not None else section.get("cache_ttl_sec", MODEL_CACHE_TTL_SEC)
        )
        self._clock = clock
        self._model: str | None = None
        self._resolved_at = 0.0

    def get(self) -> str | None:
        """The cached model, or None when empty or expired."""
        if self._model is None:
            return None
        if self._clock() - self._resolved_at > self.ttl_sec:
            return None
        return self._model

    def set(self, model: str) -> None:
        self._model = model
        self._resolved_at = self._clock()

    def invalidate(self) -> None:
        """Forget the cached model; the next request resolves again."""
        if self._model is not None:
            logger.info("Invalidating cached generator model %s", self._model)
        self._model = None
        self._resolved_at = 0.0

    def choose(self, available: Sequence[str]) -> str:
        """First preferred model present in *available*, else the fallback."""
        offered = set(available)
        for model in self.preferred:
            if model in offered:
                return model
        return self.fallback

    async def resolve(self, client: AsyncOpenAI) -> str:
        """
        Return the model to use, listing the account's models when needed.

        A failed listing is not fatal: the fallback model is used.
        """
        cached = self.get()
        if cached is not None:
            return cached

        pinned = os.environ.get(MODEL_ENV)
        if pinned:
            self.set(pinned)
            return pinned

        try:
            available = [m.id async for m in client.models.list()]
        except openai.OpenAIError as exc:
            logger.warning("Could not list models (%s); using %s", exc, self.fallback)
            model = self.fallback
        else:
            model = self.choose(available)
        logger.debug("Resolved generator model: %s", model)
        self.set(model)
        return model


DEFAULT_MODEL_HANDLE = ModelHandle()


class OpenAIGenerator:
    """
    Text-completion collaborator backed by the OpenAI API.

    Raises ConfigurationError at construction when no API key is available.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model_handle: ModelHandle | None = None,
        client: AsyncOpenAI | None = None,
        temperature: float = 0.7,
        timeout: float = 60.0,
    ) -> None:
        if client is None:
            key = api_key or os.environ.get(API_KEY_ENV)
            if not key:
                raise ConfigurationError(
                    f"{API_KEY_ENV} is not set. Export your OpenAI API key to generate sessions."
                )
            client = AsyncOpenAI(api_key=key, timeout=timeout)
        self.client = client
        self.model_handle = model_handle or DEFAULT_MODEL_HANDLE
        self.temperature = temperature

    async def generate(self, prompt: str) -> str:
        """
        Send one prompt and return the raw completion text.

        Raises:
            ModelUnavailableError: The model does not exist (handle invalidated)
            ConfigurationError: The API key was rejected
            GeneratorIOError: Network failure, timeout or other API error
        """
        model = await self.model_handle.resolve(self.client)
        logger.debug("Requesting completion from %s (%d prompt chars)", model, len(prompt))
        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature,
            )
        except openai.NotFoundError as exc:
            self.model_handle.invalidate()
            raise ModelUnavailableError(f"Model {model} is not available", model=model) from exc
        except openai.AuthenticationError as exc:
            raise ConfigurationError(f"{API_KEY_ENV} was rejected by the API") from exc
        except openai.APIConnectionError as exc:
            logger.warning("Generator connection failed: %s", exc)
            raise GeneratorIOError(f"Could not reach the generator: {exc}") from exc
        except openai.APIStatusError as exc:
            logger.warning("Generator returned HTTP %s: %s", exc.status_code, exc)
            raise GeneratorIOError(f"Generator error (HTTP {exc.status_code})") from exc

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
