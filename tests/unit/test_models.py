"""Unit tests for Pydantic models."""

from datetime import datetime, timezone
from uuid import uuid4

from vidtube.models.auth import LoginResult, RegisterRequest
from vidtube.models.response import ApiResponse, ErrorResponse


class TestEnvelopes:
    """Tests for the success and error envelopes."""

    def test_success_envelope_keys(self):
        body = ApiResponse(status_code=200, data={"a": 1}, message="ok")
        dumped = body.model_dump(mode="json", by_alias=True)

        assert dumped == {"statusCode": 200, "data": {"a": 1}, "message": "ok", "success": True}

    def test_success_follows_status_code(self):
        assert ApiResponse(status_code=201).success is True
        assert ApiResponse(status_code=404).success is False

    def test_error_envelope_keys(self):
        body = ErrorResponse(status_code=409, message="taken")
        dumped = body.model_dump(mode="json", by_alias=True)

        assert dumped == {
            "statusCode": 409,
            "data": None,
            "message": "taken",
            "success": False,
            "errors": [],
        }


class TestRequestModels:
    """Request models accept camelCase or snake_case keys."""

    def test_register_accepts_camel_case(self):
        request = RegisterRequest.model_validate({"username": "neo", "coverImage": "ref2"})

        assert request.cover_image == "ref2"
        assert request.password is None

    def test_register_accepts_field_names(self):
        assert RegisterRequest(cover_image="ref2").cover_image == "ref2"


def test_login_result_serializes_tokens_camel_case(user_factory):
    result = LoginResult(user=user_factory(), access_token="a", refresh_token="r")
    dumped = result.model_dump(mode="json", by_alias=True)

    assert dumped["accessToken"] == "a"
    assert dumped["refreshToken"] == "r"
    assert "createdAt" in dumped["user"]
    assert "watchHistory" in dumped["user"]


def test_user_dump_is_json_safe(user_factory):
    watched = uuid4()
    user = user_factory(watch_history=[watched])
    dumped = user.model_dump(mode="json", by_alias=True)

    assert dumped["watchHistory"] == [str(watched)]
    assert datetime.fromisoformat(dumped["createdAt"]).tzinfo == timezone.utc
