"""
Cloudinary blob store.

Uploads and delivery URLs go through the Cloudinary SDK. Effects are given
by name, e.g. ``background_removal`` (applied on upload) or
``gen_remove:prompt_car`` (applied on delivery).
"""
from io import BytesIO
from typing import Optional

import cloudinary.uploader
import cloudinary.utils
from cloudinary.exceptions import Error as CloudinaryError

from quickai.features.generation.providers import UploadedAsset


class CloudinaryBlobStore:
    """BlobStore backed by Cloudinary image uploads."""

    def __init__(self, cloud_name: str, api_key: str, api_secret: str, *, timeout: float = 60.0):
        # Credentials travel with every call instead of the SDK's global config
        self.options = {
            "cloud_name": cloud_name,
            "api_key": api_key,
            "api_secret": api_secret,
        }
        self.timeout = timeout

    def upload(self, data: bytes, *, effect: Optional[str] = None) -> UploadedAsset:
        options = dict(self.options, resource_type="image", timeout=self.timeout)
        if effect:
            options["transformation"] = [{"effect": effect}]

        try:
            result = cloudinary.uploader.upload(BytesIO(data), **options)
        except CloudinaryError as e:
            raise RuntimeError(f"Cloudinary: {e}") from e

        public_id = result.get("public_id")
        if not public_id:
            raise RuntimeError("Cloudinary upload returned no public_id")
        url = result.get("secure_url") or cloudinary.utils.cloudinary_url(
            public_id,
            cloud_name=self.options["cloud_name"],
            resource_type="image",
            version=result.get("version"),
            secure=True,
        )[0]
        return UploadedAsset(public_id=public_id, url=url)

    def transformed_url(self, public_id: str, effect: str) -> str:
        url, _ = cloudinary.utils.cloudinary_url(
            public_id,
            cloud_name=self.options["cloud_name"],
            resource_type="image",
            transformation=[{"effect": effect}],
            secure=True,
        )
        return url
