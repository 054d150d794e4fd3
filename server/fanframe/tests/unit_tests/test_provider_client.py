from unittest.mock import Mock, patch

import requests
from django.test import SimpleTestCase

from fanframe.utils.provider_client import ProviderError, ReplicateClient, truncate


def _response(status_code=201, payload=None, text=""):
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.json.return_value = payload or {}
    response.text = text
    return response


class ReplicateClientTest(SimpleTestCase):
    def _client(self):
        return ReplicateClient(
            api_token="test-token",
            base_url="https://api.replicate.test/v1",
            model="acme/tryon",
        )

    @patch("fanframe.utils.provider_client.requests.post")
    def test_create_prediction_success(self, mock_post):
        mock_post.return_value = _response(payload={"id": "pred_123", "status": "starting"})

        client = self._client()
        result = client.create_prediction(
            prompt="dress them",
            image_urls=["https://s/subject.png", "https://s/shirt.png", "https://s/bg.png"],
            webhook_url="https://api.example.com/api/generations/webhook/",
        )

        self.assertEqual(result["id"], "pred_123")
        called_url = mock_post.call_args[0][0]
        self.assertEqual(called_url, "https://api.replicate.test/v1/models/acme/tryon/predictions")
        headers = mock_post.call_args[1]["headers"]
        self.assertEqual(headers["Authorization"], "Bearer test-token")
        payload = mock_post.call_args[1]["json"]
        self.assertEqual(
            payload["input"]["image_input"],
            ["https://s/subject.png", "https://s/shirt.png", "https://s/bg.png"],
        )
        self.assertEqual(payload["input"]["prompt"], "dress them")
        self.assertEqual(payload["input"]["size"], "2K")
        self.assertEqual(payload["input"]["max_images"], 1)
        self.assertEqual(payload["webhook"], "https://api.example.com/api/generations/webhook/")
        self.assertEqual(payload["webhook_events_filter"], ["completed"])

    @patch("fanframe.utils.provider_client.requests.post")
    def test_create_prediction_raises_with_status_on_http_error(self, mock_post):
        mock_post.return_value = _response(status_code=503, text="overloaded")

        with self.assertRaises(ProviderError) as ctx:
            self._client().create_prediction("p", ["a", "b", "c"], "https://hook")

        self.assertEqual(ctx.exception.status_code, 503)
        self.assertEqual(ctx.exception.body, "overloaded")
        self.assertFalse(ctx.exception.is_credential_error)

    @patch("fanframe.utils.provider_client.requests.post")
    def test_credential_errors_are_flagged(self, mock_post):
        mock_post.return_value = _response(status_code=401, text="unauthorized")

        with self.assertRaises(ProviderError) as ctx:
            self._client().create_prediction("p", ["a", "b", "c"], "https://hook")

        self.assertTrue(ctx.exception.is_credential_error)

    @patch("fanframe.utils.provider_client.requests.post")
    def test_network_failure_becomes_provider_error(self, mock_post):
        mock_post.side_effect = requests.ConnectionError("no route")

        with self.assertRaises(ProviderError) as ctx:
            self._client().create_prediction("p", ["a", "b", "c"], "https://hook")

        self.assertIsNone(ctx.exception.status_code)

    @patch("fanframe.utils.provider_client.requests.post")
    def test_missing_prediction_id_is_an_error(self, mock_post):
        mock_post.return_value = _response(payload={"status": "starting"})

        with self.assertRaises(ProviderError):
            self._client().create_prediction("p", ["a", "b", "c"], "https://hook")

    @patch("fanframe.utils.provider_client.requests.post")
    def test_non_json_success_body_is_a_provider_error(self, mock_post):
        response = _response(status_code=201, text="<html>gateway</html>")
        response.json.side_effect = ValueError("Expecting value")
        mock_post.return_value = response

        with self.assertRaises(ProviderError) as ctx:
            self._client().create_prediction("p", ["a", "b", "c"], "https://hook")

        self.assertEqual(ctx.exception.status_code, 201)
        self.assertIn("gateway", ctx.exception.body)

    @patch("fanframe.utils.provider_client.requests.get")
    def test_check_account_reports_invalid_token(self, mock_get):
        mock_get.return_value = _response(status_code=401)

        result = self._client().check_account()

        self.assertEqual(result, {"status": "invalid_token", "http_status": 401})

    def test_check_account_without_token(self):
        client = ReplicateClient(api_token="", base_url="https://api.replicate.test/v1", model="m")

        self.assertFalse(client.is_configured)
        self.assertEqual(client.check_account()["status"], "not_configured")

    def test_truncate_long_bodies(self):
        value = "x" * 3000

        result = truncate(value, limit=100)

        self.assertTrue(result.startswith("x" * 100))
        self.assertIn("<truncated 2900 chars>", result)
        self.assertEqual(truncate("short", limit=100), "short")
