import base64
from io import BytesIO

from django.test import SimpleTestCase, override_settings
from PIL import Image

from fanframe.serializers import GenerationRequestSerializer, WebhookPayloadSerializer


def encoded_png(size=(64, 64)):
    buffer = BytesIO()
    Image.new("RGB", size, color="red").save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


class GenerationRequestSerializerTest(SimpleTestCase):
    def _data(self, **overrides):
        data = {
            "subject_image_data": encoded_png(),
            "garment_asset_url": "https://cdn.example.com/shirt.png",
            "background_asset_url": "https://cdn.example.com/bg.png",
            "garment_id": "home-2025",
            "user_id": "user-1",
        }
        data.update(overrides)
        return data

    def test_valid_request_decodes_image(self):
        serializer = GenerationRequestSerializer(data=self._data())

        self.assertTrue(serializer.is_valid(), serializer.errors)
        content = serializer.validated_data["subject_image_data"]
        self.assertTrue(content.startswith(b"\x89PNG"))

    def test_data_uri_prefix_is_accepted(self):
        serializer = GenerationRequestSerializer(
            data=self._data(subject_image_data=f"data:image/png;base64,{encoded_png()}")
        )

        self.assertTrue(serializer.is_valid(), serializer.errors)

    def test_optional_fields(self):
        data = self._data()
        del data["garment_id"]
        del data["user_id"]

        serializer = GenerationRequestSerializer(data=data)

        self.assertTrue(serializer.is_valid(), serializer.errors)
        self.assertEqual(serializer.validated_data["garment_id"], "unknown")
        self.assertIsNone(serializer.validated_data["user_id"])

    def test_missing_required_fields(self):
        serializer = GenerationRequestSerializer(data={"user_id": "user-1"})

        self.assertFalse(serializer.is_valid())
        self.assertIn("subject_image_data", serializer.errors)
        self.assertIn("garment_asset_url", serializer.errors)
        self.assertIn("background_asset_url", serializer.errors)

    def test_invalid_base64(self):
        serializer = GenerationRequestSerializer(data=self._data(subject_image_data="not base64!!"))

        self.assertFalse(serializer.is_valid())
        self.assertEqual(str(serializer.errors["subject_image_data"][0]), "Invalid image data")

    def test_non_image_payload(self):
        payload = base64.b64encode(b"definitely not an image").decode("ascii")

        serializer = GenerationRequestSerializer(data=self._data(subject_image_data=payload))

        self.assertFalse(serializer.is_valid())
        self.assertEqual(str(serializer.errors["subject_image_data"][0]), "Invalid image file")

    @override_settings(MAX_SUBJECT_IMAGE_BYTES=10)
    def test_oversized_image(self):
        serializer = GenerationRequestSerializer(data=self._data())

        self.assertFalse(serializer.is_valid())
        self.assertIn("maximum size", str(serializer.errors["subject_image_data"][0]))


class WebhookPayloadSerializerTest(SimpleTestCase):
    def test_replicate_prediction_payload(self):
        serializer = WebhookPayloadSerializer(
            data={"id": "pred-1", "status": "succeeded", "output": ["https://r/out.png"], "error": None}
        )

        self.assertTrue(serializer.is_valid(), serializer.errors)
        self.assertEqual(serializer.validated_data["external_job_id"], "pred-1")
        self.assertEqual(serializer.validated_data["output"], ["https://r/out.png"])

    def test_external_job_id_alias(self):
        serializer = WebhookPayloadSerializer(data={"external_job_id": "pred-2", "status": "failed", "error": "boom"})

        self.assertTrue(serializer.is_valid(), serializer.errors)
        self.assertEqual(serializer.validated_data["external_job_id"], "pred-2")
        self.assertEqual(serializer.validated_data["error"], "boom")

    def test_structured_error_is_stringified(self):
        serializer = WebhookPayloadSerializer(data={"id": "pred-3", "status": "failed", "error": {"detail": "x"}})

        self.assertTrue(serializer.is_valid(), serializer.errors)
        self.assertIsInstance(serializer.validated_data["error"], str)

    def test_missing_id(self):
        serializer = WebhookPayloadSerializer(data={"status": "succeeded"})

        self.assertFalse(serializer.is_valid())
