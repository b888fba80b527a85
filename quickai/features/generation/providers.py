"""
Generation capability protocols.

Each external generation backend is injected behind one of these
interfaces so it can be replaced by a test double.
"""
from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass(frozen=True)
class UploadedAsset:
    """A blob stored by the BlobStore."""
    public_id: str
    url: str


class TextGenerator(Protocol):
    def generate_text(self, prompt: str, *, max_tokens: Optional[int] = None) -> str:
        """Return generated text for ``prompt``."""
        ...


class ImageGenerator(Protocol):
    def generate_image(self, prompt: str) -> bytes:
        """Return encoded image bytes (PNG) for ``prompt``."""
        ...


class BlobStore(Protocol):
    def upload(self, data: bytes, *, effect: Optional[str] = None) -> UploadedAsset:
        """
        Store ``data``, optionally applying a named effect on upload.

        Returns:
            The stored asset; ``url`` points at the processed result
        """
        ...

    def transformed_url(self, public_id: str, effect: str) -> str:
        """Delivery URL for a stored asset with ``effect`` applied on read."""
        ...


class DocumentExtractor(Protocol):
    def extract_text(self, data: bytes) -> str:
        """
        Extract plain text from a document.

        Raises:
            ValidationError: the document cannot be parsed or holds no text
        """
        ...
