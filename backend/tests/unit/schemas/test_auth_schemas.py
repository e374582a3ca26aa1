"""
Unit Tests for Auth Schemas
"""
import pytest
from pydantic import ValidationError

from app.models.user import UserRole
from app.schemas.auth import UserRegister, UserLogin, UpdatePassword, ResetPassword


class TestUserRegister:
    """Test UserRegister schema"""

    def test_defaults_to_student(self):
        user = UserRegister(name="Asha Rao", email="asha@example.com", password="secret123")

        assert user.role == UserRole.STUDENT

    def test_faculty_may_self_register(self):
        user = UserRegister(name="Dr. Rao", email="rao@example.com", password="secret123", role="faculty")

        assert user.role == UserRole.FACULTY

    @pytest.mark.parametrize("role", ["admin", "superadmin"])
    def test_admin_roles_rejected(self, role):
        with pytest.raises(ValidationError) as exc_info:
            UserRegister(name="Mallory", email="m@example.com", password="secret123", role=role)

        assert "student or faculty" in str(exc_info.value)

    def test_short_password_rejected(self):
        with pytest.raises(ValidationError):
            UserRegister(name="Asha", email="asha@example.com", password="12345")

    def test_invalid_email_rejected(self):
        with pytest.raises(ValidationError):
            UserRegister(name="Asha", email="not-an-email", password="secret123")

    def test_empty_name_rejected(self):
        with pytest.raises(ValidationError):
            UserRegister(name="", email="asha@example.com", password="secret123")


class TestPasswordSchemas:

    def test_login_requires_password(self):
        with pytest.raises(ValidationError):
            UserLogin(email="asha@example.com", password="")

    def test_new_password_min_length(self):
        with pytest.raises(ValidationError):
            UpdatePassword(current_password="secret123", new_password="short")

    def test_reset_password(self):
        assert ResetPassword(password="newsecret").password == "newsecret"
