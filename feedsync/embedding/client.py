"""Embedding service client (OpenAI-compatible)."""

import os
from typing import List, Optional

import openai
import structlog
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from ..config.settings import settings
from ..exceptions import EmbeddingError

logger = structlog.get_logger()


def truncate_text(text: Optional[str], max_chars: int) -> str:
    """Clip text to max_chars characters. None becomes the empty string."""
    if not text:
        return ""
    return text[:max_chars]


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, EmbeddingError) and exc.retryable


class EmbeddingClient:
    """Turns text into a fixed-length vector via an embeddings endpoint."""

    def __init__(
        self,
        api_key: str = None,
        base_url: str = None,
        model: str = None,
        max_chars: int = None,
        timeout_seconds: float = None,
        max_attempts: int = None,
        backoff_seconds: float = 1.0,
        client=None,
    ):
        self._api_key = api_key
        self.base_url = base_url or settings.embedding_base_url
        self.model = model or settings.embedding_model
        self.max_chars = max_chars or settings.embedding_max_chars
        self.timeout_seconds = timeout_seconds or settings.embedding_timeout_seconds
        self.max_attempts = max_attempts or settings.embedding_max_retries
        self.backoff_seconds = backoff_seconds
        self._client = client

    def _get_client(self):
        """Lazy initialization of the client."""
        if self._client is not None:
            return self._client

        api_key = self._api_key or settings.embedding_api_key or os.environ.get("OPENAI_API_KEY")
        if not api_key:
            raise EmbeddingError(
                "Embedding API key not configured. Set FEEDSYNC_EMBEDDING_API_KEY environment variable."
            )
        self._client = openai.AsyncOpenAI(
            api_key=api_key,
            base_url=self.base_url,
            timeout=self.timeout_seconds,
            max_retries=0,  # retries are ours
        )
        return self._client

    async def embed(self, text: Optional[str]) -> List[float]:
        """Embed text, truncated to max_chars first.

        Raises:
            EmbeddingError: the service failed or returned no vector.
        """
        payload = truncate_text(text, self.max_chars)
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_seconds, max=20),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )
        return await retrying(self._embed_once, payload)

    async def _embed_once(self, payload: str) -> List[float]:
        client = self._get_client()
        try:
            response = await client.embeddings.create(model=self.model, input=payload)
        except openai.APIStatusError as e:
            logger.warning("embedding_call_failed", status=e.status_code, error=e.message)
            raise EmbeddingError(
                e.message,
                status=e.status_code,
                retryable=e.status_code == 429 or e.status_code >= 500,
            ) from e
        except (openai.APIConnectionError, openai.APITimeoutError) as e:
            logger.warning("embedding_call_failed", error=str(e))
            raise EmbeddingError(str(e), retryable=True) from e
        except openai.OpenAIError as e:
            logger.warning("embedding_call_failed", error=str(e))
            raise EmbeddingError(str(e)) from e

        try:
            vector = [float(x) for x in response.data[0].embedding]
        except (AttributeError, IndexError, TypeError, ValueError) as e:
            raise EmbeddingError(f"Malformed embedding response: {e}") from e
        if not vector:
            raise EmbeddingError("Embedding service returned an empty vector")

        logger.debug("embedding_computed", model=self.model, chars=len(payload), dims=len(vector))
        return vector
