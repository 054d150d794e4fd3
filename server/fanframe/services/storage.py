from io import BytesIO

import cloudinary.uploader
import requests
from django.conf import settings


class AssetStorage:
    """Durable Cloudinary storage for subject photos and generated results"""

    def __init__(self, folder=None, timeout=30):
        self.folder = folder or settings.FANFRAME_STORAGE_FOLDER
        self.timeout = timeout

    def store_subject_image(self, job_id, content: bytes) -> str:
        upload = cloudinary.uploader.upload(
            BytesIO(content),
            folder=f"{self.folder}/jobs/{job_id}",
            public_id="subject",
            overwrite=True,
            resource_type="image",
        )
        return upload['secure_url']

    def store_result(self, job_id, source_url) -> str:
        """Copy a provider result (possibly short-lived) into our storage."""
        response = requests.get(source_url, timeout=self.timeout)
        response.raise_for_status()
        upload = cloudinary.uploader.upload(
            BytesIO(response.content),
            folder=f"{self.folder}/results",
            public_id=job_id,
            overwrite=True,
            format="png",
            resource_type="image",
        )
        return upload['secure_url']
