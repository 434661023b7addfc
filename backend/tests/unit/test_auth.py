import jwt as pyjwt
import pytest
from fastapi import HTTPException

from gourmap.infra import jwt as jwt_helper
from gourmap.infra.auth import verify_access_jwt
from gourmap.settings import settings


def test_access_token_round_trip():
	token = jwt_helper.encode_access("viewer-1", username="hana", session_id=" s-1 ")
	claims = jwt_helper.decode_access(token)
	assert claims.sub == "viewer-1"
	assert claims.username == "hana"
	assert claims.session_id == "s-1"

	user = verify_access_jwt(token)
	assert (user.id, user.username, user.session_id) == ("viewer-1", "hana", "s-1")


def test_expired_token_is_rejected():
	token = jwt_helper.encode_access("viewer-1", ttl_seconds=-60)
	with pytest.raises(HTTPException) as exc_info:
		verify_access_jwt(token)
	assert exc_info.value.status_code == 401
	assert exc_info.value.detail == "invalid_token"


def test_token_for_another_audience_is_rejected():
	token = pyjwt.encode(
		{"sub": "viewer-1", "iss": jwt_helper.ISSUER, "aud": "someone-else", "iat": 0, "exp": 4_000_000_000},
		settings.secret_key,
		algorithm="HS256",
	)
	with pytest.raises(pyjwt.InvalidTokenError):
		jwt_helper.decode_access(token)
