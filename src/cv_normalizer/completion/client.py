"""Completion-service wrapper: turn a CV plus instructions into raw model output.

Talks to any OpenAI-compatible chat-completions endpoint (OpenAI, Azure
OpenAI v1, or Gemini's OpenAI-compatible API via ``OPENAI_BASE_URL``).
Library exceptions are translated into the error taxonomy in
``cv_normalizer.errors`` so callers can decide what to retry.
"""

import logging
import time

import openai
from openai import OpenAI

from cv_normalizer import config
from cv_normalizer.completion.prompts import SYSTEM_PROMPT, build_user_prompt
from cv_normalizer.errors import AuthError, CompletionServiceError, ConfigurationError, TransientServiceError
from cv_normalizer.submission.schema import UploadedFile

logger = logging.getLogger(__name__)


def _attachment_part(cv_file: UploadedFile) -> dict:
    """Build the inline content part for an attached CV (image or PDF)."""
    if cv_file.mime_type.startswith("image/"):
        return {"type": "image_url", "image_url": {"url": cv_file.data_uri}}
    return {"type": "file", "file": {"filename": cv_file.name, "file_data": cv_file.data_uri}}


def build_messages(instructions: str, cv_text: str = "", cv_file: UploadedFile | None = None) -> list[dict]:
    """Return the chat messages for one extraction request.  The attachment precedes the text prompt."""
    user_prompt = build_user_prompt(instructions, cv_text, has_attachment=cv_file is not None)
    content: list[dict] = [{"type": "text", "text": user_prompt}]
    if cv_file is not None:
        content.insert(0, _attachment_part(cv_file))
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": content},
    ]


def translate_error(exc: Exception) -> CompletionServiceError:
    """Map an ``openai`` exception onto the retry-relevant error classes."""
    if isinstance(exc, openai.RateLimitError):
        return TransientServiceError("Rate limit reached. Please try again in a minute.")
    if isinstance(exc, openai.APIConnectionError):
        return TransientServiceError("Network error while contacting the completion service.")
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return AuthError("API key is not valid. Check the service configuration.")
    # Gemini reports a bad key as a 400 with this message
    if isinstance(exc, openai.APIStatusError) and "API key not valid" in str(exc):
        return AuthError("API key is not valid. Check the service configuration.")
    return CompletionServiceError(f"System error: {exc}")


class CompletionService:
    """Thin stateful wrapper around one OpenAI client."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        client: OpenAI | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else config.OPENAI_API_KEY
        self.base_url = base_url if base_url is not None else config.OPENAI_BASE_URL
        self.model = model or config.COMPLETION_MODEL
        self._client = client

    def _get_client(self) -> OpenAI:
        """Lazy-initialise the OpenAI client.  Raises ConfigurationError without a key."""
        if self._client is not None:
            return self._client
        if not self.api_key:
            raise ConfigurationError("API key is not configured. Set OPENAI_API_KEY in the environment.")
        logger.info("Connecting to completion service at %s  (model=%s)", self.base_url or "api.openai.com", self.model)
        self._client = OpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    def process_cv(self, instructions: str, cv_text: str = "", cv_file: UploadedFile | None = None) -> str:
        """Send one CV to the model and return its raw text reply.

        Raises ConfigurationError, TransientServiceError, AuthError, or
        CompletionServiceError (also for an empty reply).
        """
        client = self._get_client()
        messages = build_messages(instructions, cv_text, cv_file)

        t0 = time.time()
        try:
            completion = client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=config.COMPLETION_TEMPERATURE,
            )
        except openai.OpenAIError as exc:
            logger.error("Completion call failed after %.1fs: %s", time.time() - t0, exc)
            raise translate_error(exc) from exc

        result = completion.choices[0].message.content if completion.choices else None
        if not result:
            raise CompletionServiceError("The model returned no content. The file may be too large or unreadable.")

        logger.info(
            "Completion received in %.1fs (%d chars, attachment=%s)",
            time.time() - t0,
            len(result),
            cv_file.mime_type if cv_file else None,
        )
        return result
