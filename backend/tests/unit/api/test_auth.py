"""
Unit Tests for Authentication API Endpoints
"""
import asyncio
from types import SimpleNamespace

import pytest
from httpx import AsyncClient
from faker import Faker

from app.api.v1.endpoints import auth
from app.services.email_service import email_service

fake = Faker()

TEST_PASSWORD = 'testpassword123'


class TestUserRegistration:
    """Test user registration endpoint"""

    @pytest.mark.asyncio
    async def test_register_success(self, client: AsyncClient, db_session):
        """Account is created and a session is returned"""
        user_data = {
            'email': fake.email(),
            'password': 'securePassword123',
            'name': fake.name(),
            'role': 'student'
        }

        response = await client.post('/api/v1/auth/register', json=user_data)

        assert response.status_code == 201
        body = response.json()
        assert body['success'] is True
        assert body['data']['user']['email'] == user_data['email']
        assert body['data']['access_token']
        assert body['data']['refresh_token']
        assert 'hashed_password' not in body['data']['user']
        # No SMTP configured in tests
        assert body['email_sent'] is False

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, client: AsyncClient, student_user):
        """Registering an existing email is a conflict"""
        user_data = {
            'email': student_user.email,
            'password': 'securePassword123',
            'name': fake.name(),
        }

        response = await client.post('/api/v1/auth/register', json=user_data)

        assert response.status_code == 400
        assert response.json()['success'] is False
        assert 'already registered' in response.json()['message'].lower()
        assert response.json()['error']['code'] == 'CONFLICT'

    @pytest.mark.asyncio
    async def test_register_admin_role_rejected(self, client: AsyncClient, db_session):
        user_data = {
            'email': fake.email(),
            'password': 'securePassword123',
            'name': fake.name(),
            'role': 'admin'
        }

        response = await client.post('/api/v1/auth/register', json=user_data)

        assert response.status_code == 400
        assert response.json()['error']['code'] == 'VALIDATION_ERROR'

    @pytest.mark.asyncio
    async def test_register_missing_fields(self, client: AsyncClient, db_session):
        response = await client.post('/api/v1/auth/register', json={'email': fake.email()})

        assert response.status_code == 400
        fields = {item['field'] for item in response.json()['error']['details']['errors']}
        assert {'name', 'password'} <= fields


class TestUserLogin:
    """Test login endpoint"""

    @pytest.mark.asyncio
    async def test_login_success(self, client: AsyncClient, student_user):
        response = await client.post(
            '/api/v1/auth/login',
            json={'email': student_user.email, 'password': TEST_PASSWORD}
        )

        assert response.status_code == 200
        data = response.json()['data']
        assert data['user']['id'] == str(student_user.id)
        assert data['token_type'] == 'bearer'

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, client: AsyncClient, student_user):
        response = await client.post(
            '/api/v1/auth/login',
            json={'email': student_user.email, 'password': 'wrong-password'}
        )

        assert response.status_code == 401
        assert response.json()['message'] == 'Invalid credentials'

    @pytest.mark.asyncio
    async def test_login_unknown_email(self, client: AsyncClient, db_session):
        response = await client.post(
            '/api/v1/auth/login',
            json={'email': fake.email(), 'password': TEST_PASSWORD}
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_login_inactive_account(self, client: AsyncClient, db_session, student_user):
        student_user.is_active = False
        await db_session.commit()

        response = await client.post(
            '/api/v1/auth/login',
            json={'email': student_user.email, 'password': TEST_PASSWORD}
        )

        assert response.status_code == 403


class TestCurrentUser:

    @pytest.mark.asyncio
    async def test_me(self, client: AsyncClient, student_user, student_headers):
        response = await client.get('/api/v1/auth/me', headers=student_headers)

        assert response.status_code == 200
        assert response.json()['data']['email'] == student_user.email

    @pytest.mark.asyncio
    async def test_me_without_token(self, client: AsyncClient, db_session):
        response = await client.get('/api/v1/auth/me')

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_me_with_garbage_token(self, client: AsyncClient, db_session):
        response = await client.get('/api/v1/auth/me', headers={'Authorization': 'Bearer not-a-jwt'})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_update_password_wrong_current(self, client: AsyncClient, student_headers):
        response = await client.put(
            '/api/v1/auth/updatepassword',
            json={'current_password': 'nope-nope', 'new_password': 'brandnew123'},
            headers=student_headers
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_refresh_rejects_access_token(self, client: AsyncClient, student_headers):
        access_token = student_headers['Authorization'].split(' ', 1)[1]

        response = await client.post('/api/v1/auth/refresh', json={'refresh_token': access_token})

        assert response.status_code == 401


class TestPasswordReset:

    @pytest.mark.asyncio
    async def test_forgot_password_unknown_email(self, client: AsyncClient, db_session):
        response = await client.post('/api/v1/auth/forgotpassword', json={'email': fake.email()})

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_reset_with_invalid_token(self, client: AsyncClient, db_session):
        response = await client.put('/api/v1/auth/resetpassword/not-a-token', json={'password': 'brandnew123'})

        assert response.status_code == 400
        assert response.json()['error']['code'] == 'INVALID_TOKEN'


class TestVerificationEmailTask:

    @pytest.mark.asyncio
    async def test_task_held_until_done(self, monkeypatch):
        release = asyncio.Event()

        async def send(**kwargs):
            await release.wait()
            return True

        monkeypatch.setattr(email_service, 'smtp_host', 'smtp.example.com')
        monkeypatch.setattr(email_service, 'smtp_user', 'mailer')
        monkeypatch.setattr(email_service, 'smtp_password', 'secret')
        monkeypatch.setattr(email_service, 'send_verification_email', send)
        user = SimpleNamespace(email='asha@example.com', name='Asha')

        assert auth.queue_verification_email(user, 'raw-token') is True
        assert len(auth._email_tasks) == 1

        task = next(iter(auth._email_tasks))
        release.set()
        await task
        await asyncio.sleep(0)

        assert auth._email_tasks == set()
