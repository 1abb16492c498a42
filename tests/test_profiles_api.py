"""
API tests for the profile and ID verification endpoints.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from app.infrastructure.db.models.user import UserVerification
from app.infrastructure.exceptions import DuplicateError, NotFoundError, ValidationError


@pytest.fixture
def mock_profile_service(app):
    from app.api.routes.profiles import get_profile_service

    service = MagicMock()
    service.get_profile = AsyncMock()
    service.update_profile = AsyncMock()
    service.submit_verification = AsyncMock()
    service.get_verification_status = AsyncMock(return_value=None)
    app.dependency_overrides[get_profile_service] = lambda: service
    return service


class TestProfileEndpoints:

    def test_requires_login(self, client, login_as, mock_profile_service):
        login_as(None)

        response = client.get("/api/profile/me")

        assert response.status_code == 401
        mock_profile_service.get_profile.assert_not_called()

    def test_get_profile(self, client, login_as, identity, mock_profile_service):
        login_as(identity)
        mock_profile_service.get_profile.return_value = {"id": "user_1", "headline": "Designer"}

        response = client.get("/api/profile/me")

        assert response.status_code == 200
        assert response.json() == {"profile": {"id": "user_1", "headline": "Designer"}}
        mock_profile_service.get_profile.assert_awaited_once_with("user_1")

    def test_missing_user_is_404(self, client, login_as, identity, mock_profile_service):
        login_as(identity)
        mock_profile_service.get_profile.side_effect = NotFoundError(
            "No user found with id user_1", operation="select", table="users"
        )

        response = client.get("/api/profile/me")

        assert response.status_code == 404
        assert response.json()["error"] == "NotFoundError"

    def test_patch_profile(self, client, login_as, identity, mock_profile_service):
        login_as(identity)
        mock_profile_service.update_profile.return_value = {"id": "user_1", "bio": "Hello"}

        response = client.patch("/api/profile/me", json={"bio": "Hello", "hourly_rate": 30000})

        assert response.status_code == 200
        update = mock_profile_service.update_profile.call_args.args[1]
        assert update.bio == "Hello"
        assert update.hourly_rate == 30000

    def test_blank_name_is_rejected(self, client, login_as, identity, mock_profile_service):
        login_as(identity)

        response = client.patch("/api/profile/me", json={"name": "   "})

        assert response.status_code == 422
        mock_profile_service.update_profile.assert_not_called()


class TestVerificationEndpoints:

    BODY = {"documentType": "sa_id", "documentUrl": "/api/upload/id.jpg"}

    def test_submit(self, client, login_as, identity, mock_profile_service):
        login_as(identity)
        mock_profile_service.submit_verification.return_value = UserVerification(
            id="ver_1", user_id="user_1", document_type="sa_id", document_url="/api/upload/id.jpg"
        )

        response = client.post("/api/profile/verification", json=self.BODY)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["verification"]["status"] == "pending"

    def test_pending_submission_is_409(self, client, login_as, identity, mock_profile_service):
        login_as(identity)
        mock_profile_service.submit_verification.side_effect = DuplicateError(
            "You already have a pending verification request"
        )

        response = client.post("/api/profile/verification", json=self.BODY)

        assert response.status_code == 409
        assert response.json()["message"] == "You already have a pending verification request"

    def test_already_verified_is_400(self, client, login_as, identity, mock_profile_service):
        login_as(identity)
        mock_profile_service.submit_verification.side_effect = ValidationError(
            "You are already verified"
        )

        response = client.post("/api/profile/verification", json=self.BODY)

        assert response.status_code == 400

    def test_status_when_never_submitted(self, client, login_as, identity, mock_profile_service):
        login_as(identity)

        response = client.get("/api/profile/verification")

        assert response.status_code == 200
        assert response.json() == {"verification": None}
