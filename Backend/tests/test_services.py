"""Unit tests for the service helpers."""
import asyncio
import io

import jwt
import pytest
from PIL import Image
from pymongo import ASCENDING, DESCENDING

from routes.task import parse_count, parse_sort
from services import auth_service, email_service, image_service


class TestAuthService:
    """Tests for hashing and token helpers."""

    def test_hash_roundtrip(self):
        hashed = auth_service.get_password_hash("burgerOfTheDay")
        assert hashed != "burgerOfTheDay"
        assert auth_service.verify_password("burgerOfTheDay", hashed)
        assert not auth_service.verify_password("burgerOfTheWeek", hashed)

    def test_token_carries_user_id(self):
        token = auth_service.create_access_token("65a1f0c2e4b0a1b2c3d4e5f6")
        payload = auth_service.decode_access_token(token)
        assert payload["id"] == "65a1f0c2e4b0a1b2c3d4e5f6"

    def test_tokens_are_unique(self):
        tokens = {auth_service.create_access_token("same-user") for _ in range(5)}
        assert len(tokens) == 5

    def test_decode_rejects_foreign_signature(self):
        forged = jwt.encode({"id": "someone"}, "another-secret", algorithm="HS256")
        assert auth_service.decode_access_token(forged) is None
        assert auth_service.decode_access_token("garbage") is None

    def test_missing_secret(self, monkeypatch):
        monkeypatch.delenv("JWT_SECRET")
        with pytest.raises(Exception, match="JWT_SECRET"):
            auth_service.create_access_token("someone")


class TestImageService:
    """Tests for avatar checks and normalization."""

    @pytest.mark.parametrize("name", ["me.jpg", "me.jpeg", "holiday.photo.png"])
    def test_allowed_names(self, name):
        assert image_service.is_allowed_avatar_name(name)

    @pytest.mark.parametrize("name", ["me.gif", "me.png.exe", "me.png\n", "jpg", "", None, "me.PNG"])
    def test_rejected_names(self, name):
        assert not image_service.is_allowed_avatar_name(name)

    def test_normalize_resizes_to_png(self, jpeg_bytes):
        result = image_service.normalize_avatar(jpeg_bytes)
        image = Image.open(io.BytesIO(result))
        assert image.format == "PNG"
        assert image.size == image_service.AVATAR_SIZE

    def test_normalize_rejects_garbage(self):
        with pytest.raises(image_service.InvalidImage):
            image_service.normalize_avatar(b"not an image")


class TestEmailService:
    """Tests for outbound email."""

    def test_message_shape(self):
        message = email_service.build_message("bob@bobsburgers.com", "Hi", "Hello Bob")
        assert message["personalizations"] == [{"to": [{"email": "bob@bobsburgers.com"}]}]
        assert message["subject"] == "Hi"
        assert message["content"][0]["value"] == "Hello Bob"

    def test_disabled_without_key(self):
        assert asyncio.run(email_service.send_welcome_email("bob@bobsburgers.com", "Bob")) is False

    def test_failures_are_swallowed(self, monkeypatch):
        monkeypatch.setattr(email_service, "EMAIL_ENABLED", True)
        monkeypatch.setattr(email_service, "SENDGRID_API_KEY", "SG.test")
        # Nothing listens on the discard port
        monkeypatch.setattr(email_service, "SENDGRID_SEND_URL", "http://127.0.0.1:9/v3/mail/send")
        assert asyncio.run(email_service.send_cancellation_email("bob@bobsburgers.com", "Bob")) is False


class TestTaskQueryParsing:
    """Tests for the sortBy / limit / skip parsers."""

    def test_parse_sort(self):
        assert parse_sort("created_at_desc") == ("created_at", DESCENDING)
        assert parse_sort("updatedAt_asc") == ("updated_at", ASCENDING)
        assert parse_sort("completed_asc") == ("completed", ASCENDING)

    @pytest.mark.parametrize("value", [None, "", "owner_asc", "description", "description_up"])
    def test_parse_sort_ignores_unknown(self, value):
        assert parse_sort(value) is None

    def test_parse_count(self):
        assert parse_count("10") == 10
        assert parse_count("0") is None
        assert parse_count("-1") is None
        assert parse_count("ten") is None
        assert parse_count(None) is None
