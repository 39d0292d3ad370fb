"""
Provider manager for ProductShot Studio collaborators.

Implements the three collaborator contracts by delegating to concrete clients:
- Lazy construction of clients from Config
- Retry with tenacity for transient network failures
- Text and analysis failover along the provider chain (preferred provider first)
- Image generation on Gemini only
- Per-provider call and failure counts
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional
import logging

import httpx
from tenacity import (
    AsyncRetrying,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from . import (
    ImageAnalyzer,
    ImageGenerator,
    TextGenerator,
    get_claude_client,
    get_gemini_client,
)
from ..config import Config, TEXT_PROVIDERS
from ..errors import AnalysisError, ConfigError, GenerationError, ProductShotError
from ..models import ImagePayload

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (
    httpx.ConnectTimeout,
    httpx.ReadTimeout,
    httpx.NetworkError,
)


@dataclass
class ProviderStats:
    """Call accounting for display and debugging."""

    calls: dict[str, int] = field(default_factory=dict)
    failures: dict[str, int] = field(default_factory=dict)
    failovers: list[dict] = field(default_factory=list)

    def record_call(self, provider: str) -> None:
        self.calls[provider] = self.calls.get(provider, 0) + 1

    def record_failure(self, provider: str) -> None:
        self.failures[provider] = self.failures.get(provider, 0) + 1

    def to_dict(self) -> dict:
        return {
            "calls": dict(self.calls),
            "failures": dict(self.failures),
            "failovers": list(self.failovers),
        }


class ProviderManager(ImageAnalyzer, TextGenerator, ImageGenerator):
    """Routes collaborator calls to Gemini and Claude with retry and failover.

    Usage:
        async with ProviderManager(Config.load()) as providers:
            description = await providers.analyze(image)
            prompts = await providers.generate_structured(prompt, STRING_ARRAY_SCHEMA)
            edited = await providers.generate(image, prompts[0])
    """

    def __init__(
        self,
        config: Config,
        providers: Optional[dict] = None,
    ):
        """
        Initialize the provider manager.

        Args:
            config: Loaded configuration (API keys, models, retry policy)
            providers: Optional pre-built clients by name ("gemini", "claude")
        """
        self.config = config
        self.stats = ProviderStats()
        self._providers: dict[str, Any] = dict(providers or {})

    def name(self) -> str:
        return "manager"

    def _get_provider(self, provider_name: str):
        """Lazy-load and return the specified provider."""
        if provider_name in self._providers:
            return self._providers[provider_name]

        defaults = self.config.defaults
        if provider_name == "gemini":
            if not self.config.api_keys.google:
                raise ConfigError("No API key available for Gemini provider")
            GeminiClient = get_gemini_client()
            provider = GeminiClient(
                api_key=self.config.api_keys.google,
                text_model=defaults.text_model,
                analysis_model=defaults.analysis_model,
                image_model=defaults.image_model,
                aspect_ratio=defaults.aspect_ratio,
                timeout=defaults.request_timeout,
            )
        elif provider_name == "claude":
            if not self.config.api_keys.anthropic:
                raise ConfigError("No API key available for Claude provider")
            ClaudeClient = get_claude_client()
            provider = ClaudeClient(
                api_key=self.config.api_keys.anthropic,
                model=defaults.claude_model,
                timeout=defaults.request_timeout,
            )
        else:
            raise ConfigError(f"Unknown provider: {provider_name}")

        self._providers[provider_name] = provider
        return provider

    def _get_text_provider_chain(self) -> list[str]:
        """Providers for text and analysis, preferred first.

        Pre-built providers count as available even without a configured key.
        """
        preferred = self.config.defaults.text_provider
        ordered = [preferred] + [p for p in TEXT_PROVIDERS if p != preferred]

        keys = {
            "gemini": self.config.api_keys.google,
            "claude": self.config.api_keys.anthropic,
        }
        return [p for p in ordered if p in self._providers or keys.get(p)]

    async def _with_retry(self, call: Callable[[], Awaitable[Any]]) -> Any:
        """Run ``call`` with automatic retry on transient network failures."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(max(1, self.config.defaults.max_retries)),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                return await call()

    async def _call_chain(
        self,
        operation: str,
        invoke: Callable[[Any], Awaitable[Any]],
        error_cls: type,
    ) -> Any:
        """Try each text provider in order until one succeeds.

        Raises:
            error_cls: If every provider in the chain fails
        """
        chain = self._get_text_provider_chain()
        if not chain:
            raise error_cls(
                f"No text providers available for {operation}. "
                "Configure GOOGLE_API_KEY or ANTHROPIC_API_KEY."
            )

        attempted = []
        last_error: Optional[Exception] = None

        for provider_name in chain:
            attempted.append(provider_name)
            try:
                provider = self._get_provider(provider_name)
                self.stats.record_call(provider_name)
                result = await self._with_retry(lambda: invoke(provider))
            except (ProductShotError, httpx.HTTPError) as e:
                last_error = e
                self.stats.record_failure(provider_name)
                logger.warning(f"Provider {provider_name} failed {operation}: {e}. Trying next provider in chain.")
                continue

            if provider_name != chain[0]:
                logger.info(f"{operation} failed over to {provider_name} after {', '.join(attempted[:-1])} failed")
                self.stats.failovers.append({
                    "operation": operation,
                    "from": chain[0],
                    "to": provider_name,
                    "at": datetime.now().isoformat(),
                })
            return result

        if isinstance(last_error, error_cls):
            raise last_error
        raise error_cls(
            f"All providers failed {operation}. Attempted: {', '.join(attempted)}. "
            f"Last error: {last_error}"
        ) from last_error

    async def analyze(self, image: ImagePayload) -> str:
        return await self._call_chain("analysis", lambda p: p.analyze(image), AnalysisError)

    async def generate_text(self, prompt: str) -> str:
        return await self._call_chain("text generation", lambda p: p.generate_text(prompt), GenerationError)

    async def generate_structured(self, prompt: str, schema: dict) -> Any:
        return await self._call_chain(
            "structured generation",
            lambda p: p.generate_structured(prompt, schema),
            GenerationError,
        )

    async def generate(self, image: ImagePayload, prompt: str) -> ImagePayload:
        """Generate an image with Gemini, retrying transient network failures."""
        try:
            provider = self._get_provider("gemini")
        except ConfigError as e:
            raise GenerationError(str(e)) from e

        self.stats.record_call("gemini")
        try:
            return await self._with_retry(lambda: provider.generate(image, prompt))
        except httpx.HTTPError as e:
            self.stats.record_failure("gemini")
            raise GenerationError(f"Image request failed: {e}") from e
        except GenerationError:
            self.stats.record_failure("gemini")
            raise

    async def aclose(self):
        """Clean up resources."""
        for provider in self._providers.values():
            close = getattr(provider, "aclose", None)
            if close is not None:
                await close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
