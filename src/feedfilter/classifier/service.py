"""Classification service backed by an OpenAI-compatible completion endpoint.

One classify() call makes exactly one POST to `{endpoint}/v1/completions`.
Transport and parse failures are raised as ClassificationError; deciding
what a failure means for the item is the caller's job.

Usage:
    from feedfilter.classifier.service import ClassificationService

    async with httpx.AsyncClient(timeout=30.0) as http:
        service = ClassificationService(http, settings_provider, config.completion)
        result = await service.classify("10 motivational quotes you need today")
        result.decision  # "suppress"
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

from feedfilter.classifier.prompts import build_prompt, parse_decision
from feedfilter.core.errors import ClassificationError
from feedfilter.core.logging import get_logger, truncate_text

if TYPE_CHECKING:
    from feedfilter.config_schema import CompletionConfig
    from feedfilter.db.store import Decision
    from feedfilter.settings import SettingsProvider

logger = get_logger(__name__)

COMPLETIONS_PATH = "/v1/completions"


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    """Decision for one item text.

    Attributes:
        decision: "keep" or "suppress"
        raw: Parsed JSON body returned by the endpoint
        duration_ms: Round-trip time of the completion request
    """

    decision: Decision
    raw: dict[str, Any] | None = None
    duration_ms: int = 0

    @property
    def should_keep(self) -> bool:
        return self.decision == "keep"


class ClassificationService:
    """Turns item text into a keep/suppress decision via a completion model.

    Attributes:
        _http: Shared httpx client (owns connection pooling and timeouts)
        _settings: Provider for endpoint, model, template and keyword
        _completion: Request parameters (max_tokens, temperature)
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        settings: SettingsProvider,
        completion: CompletionConfig,
    ):
        self._http = http_client
        self._settings = settings
        self._completion = completion

    async def classify(self, text: str) -> ClassificationResult:
        """Classify one item text.

        Args:
            text: Item text to substitute into the prompt template

        Returns:
            ClassificationResult with the parsed decision

        Raises:
            ClassificationError: On transport errors, non-2xx status, or a
                response without choices[0].text
        """
        settings = await self._settings.get()
        url = settings.endpoint.rstrip("/") + COMPLETIONS_PATH
        payload = {
            "model": settings.model_name,
            "prompt": build_prompt(settings.prompt_template, text),
            "max_tokens": self._completion.max_tokens,
            "temperature": self._completion.temperature,
        }

        logger.debug(
            "classification_request",
            model=settings.model_name,
            endpoint=settings.endpoint,
            text=truncate_text(text),
        )

        start_time = time.monotonic()
        try:
            response = await self._http.post(url, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            raise ClassificationError(
                f"Completion endpoint {url} returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ClassificationError(
                f"Completion request to {url} failed: {e!r}. "
                "Check that the completion server is running and the endpoint is correct."
            ) from e
        except ValueError as e:
            raise ClassificationError(f"Completion endpoint {url} returned invalid JSON") from e

        duration_ms = int((time.monotonic() - start_time) * 1000)
        completion_text = _extract_completion_text(body)
        if completion_text is None:
            raise ClassificationError(
                f"Completion response from {url} has no choices[0].text",
                status_code=response.status_code,
            )

        decision = parse_decision(completion_text, settings.suppress_keyword)
        logger.info(
            "item_evaluated",
            text=truncate_text(text),
            output=completion_text.strip()[:40],
            decision=decision,
            model=settings.model_name,
            duration_ms=duration_ms,
        )
        return ClassificationResult(decision=decision, raw=body, duration_ms=duration_ms)


def _extract_completion_text(body: Any) -> str | None:
    """Return the first choice's text, or None if the body is not shaped as expected."""
    if not isinstance(body, dict):
        return None
    choices = body.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict) or not isinstance(first.get("text"), str):
        return None
    return first["text"]
