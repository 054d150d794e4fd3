import logging
from typing import Dict, List, Optional

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

LOG_TRUNCATE = 2500


def truncate(value: str, limit: int = LOG_TRUNCATE) -> str:
    if not value or len(value) <= limit:
        return value
    return f"{value[:limit]}...<truncated {len(value) - limit} chars>"


class ProviderError(Exception):
    """Raised when the provider could not accept a request"""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(message)

    @property
    def is_credential_error(self) -> bool:
        return self.status_code in (401, 403)


class ReplicateClient:
    """Client for creating predictions on Replicate with a completion webhook"""

    def __init__(
        self,
        api_token: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: int = 30,
    ):
        self.api_token = settings.REPLICATE_API_TOKEN if api_token is None else api_token
        self.base_url = (base_url or settings.REPLICATE_API_URL).rstrip('/')
        self.model = model or settings.REPLICATE_MODEL
        self.timeout = timeout
        self.headers = {
            'Content-Type': 'application/json',
            'Authorization': f'Bearer {self.api_token}'
        }

    @property
    def is_configured(self) -> bool:
        return bool(self.api_token)

    @property
    def predictions_url(self) -> str:
        return f"{self.base_url}/models/{self.model}/predictions"

    def create_prediction(self, prompt: str, image_urls: List[str], webhook_url: str) -> Dict:
        """
        Submit a generation and return immediately

        Args:
            prompt: Generation instructions
            image_urls: Subject photo, garment asset and background asset URLs
            webhook_url: Where the provider posts the finished prediction

        Returns:
            The prediction as created by the provider (contains its `id`)

        Raises:
            ProviderError: If the provider is unreachable or rejects the request
        """
        payload = {
            'input': {
                'prompt': prompt,
                'image_input': image_urls,
                'size': '2K',
                'aspect_ratio': 'match_input_image',
                'max_images': 1,
                'sequential_image_generation': 'disabled',
            },
            'webhook': webhook_url,
            'webhook_events_filter': ['completed'],
        }

        try:
            response = requests.post(
                self.predictions_url,
                headers=self.headers,
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ProviderError(f"Replicate request failed: {exc}") from exc

        if not response.ok:
            body = truncate(response.text)
            logger.error(f"Replicate error {response.status_code}: {body}")
            raise ProviderError(
                f"Replicate API error: {response.status_code}",
                status_code=response.status_code,
                body=body,
            )

        try:
            prediction = response.json()
        except ValueError as exc:
            body = truncate(response.text)
            logger.error(f"Replicate returned a non-JSON body ({response.status_code}): {body}")
            raise ProviderError(
                "Replicate response was not valid JSON",
                status_code=response.status_code,
                body=body,
            ) from exc

        if not isinstance(prediction, dict) or not prediction.get('id'):
            raise ProviderError(
                "Replicate response did not include a prediction id",
                status_code=response.status_code,
            )
        return prediction

    def check_account(self) -> Dict:
        """
        Probe the provider with the configured credential

        Returns:
            dict with `status` ("ok", "invalid_token", "rate_limited", "error")
            and the HTTP status code when one was received
        """
        if not self.is_configured:
            return {'status': 'not_configured', 'http_status': None}

        try:
            response = requests.get(
                f"{self.base_url}/account",
                headers=self.headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            return {'status': f'error: {exc}', 'http_status': None}

        if response.status_code == 401:
            status = 'invalid_token'
        elif response.status_code == 429:
            status = 'rate_limited'
        elif response.ok:
            status = 'ok'
        else:
            status = 'error'
        return {'status': status, 'http_status': response.status_code}
