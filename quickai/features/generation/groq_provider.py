"""Groq chat-completions text generator."""

import logging
from typing import Optional

import groq

logger = logging.getLogger(__name__)


class GroqTextGenerator:
    """TextGenerator backed by the Groq chat completions API."""

    def __init__(self, api_key: str, model: str, *, timeout: float = 60.0, client: Optional[groq.Groq] = None):
        # max_retries=0: failures surface immediately, nothing is retried
        self.client = client or groq.Groq(api_key=api_key, timeout=timeout, max_retries=0)
        self.model = model

    def generate_text(self, prompt: str, *, max_tokens: Optional[int] = None) -> str:
        kwargs = {}
        if max_tokens:
            kwargs["max_tokens"] = max_tokens
        completion = self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=0.7,
            **kwargs,
        )
        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise RuntimeError("Groq returned an empty completion")
        logger.debug("[groq] completion received", extra={"model": self.model, "chars": len(content)})
        return content.strip()
