"""ClipDrop text-to-image API client."""

from typing import Optional

import httpx


class ClipdropImageGenerator:
    """ImageGenerator backed by ClipDrop's text-to-image endpoint."""

    def __init__(self, api_key: str, url: str, *, timeout: float = 60.0, client: Optional[httpx.Client] = None):
        self.api_key = api_key
        self.url = url
        self.client = client or httpx.Client(timeout=timeout)

    def generate_image(self, prompt: str) -> bytes:
        """
        Generate an image for a prompt.

        Returns:
            PNG image bytes
        """
        response = self.client.post(
            self.url,
            files={"prompt": (None, prompt)},
            headers={"x-api-key": self.api_key},
        )

        if response.status_code == 200:
            return response.content

        error_msg = f"ClipDrop API error: {response.status_code}"
        try:
            error_data = response.json()
            if "error" in error_data:
                error_msg = f"ClipDrop: {error_data['error']}"
        except ValueError:
            pass

        raise RuntimeError(error_msg)
