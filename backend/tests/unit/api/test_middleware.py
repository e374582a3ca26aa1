"""
Unit Tests for HTTP middleware: request ids, access logging, security headers, body limits
"""
import logging

import pytest
from httpx import ASGITransport, AsyncClient
from starlette.applications import Starlette
from starlette.responses import PlainTextResponse
from starlette.routing import Route

from app.core.middleware import RequestSizeLimitMiddleware, is_quiet


class TestRequestLogging:

    @pytest.mark.asyncio
    async def test_caller_request_id_echoed(self, client: AsyncClient):
        response = await client.get('/health/live', headers={'X-Request-ID': 'abc12345'})

        assert response.headers['X-Request-ID'] == 'abc12345'
        assert response.headers['X-Response-Time'].endswith('ms')

    @pytest.mark.asyncio
    async def test_fresh_request_id_generated(self, client: AsyncClient):
        response = await client.get('/health/live')

        assert len(response.headers['X-Request-ID']) == 8

    @pytest.mark.asyncio
    async def test_access_line_logged_with_status_level(self, client: AsyncClient, caplog):
        with caplog.at_level(logging.INFO, logger='unimanage'):
            await client.get('/api/v1/courses')

        records = [r for r in caplog.records if getattr(r, 'event_type', None) == 'http_request']
        assert len(records) == 1
        assert records[0].http_status == 401
        assert records[0].levelno == logging.WARNING

    @pytest.mark.asyncio
    async def test_health_checks_not_logged(self, client: AsyncClient, caplog):
        with caplog.at_level(logging.INFO, logger='unimanage'):
            await client.get('/health/live')

        assert not [r for r in caplog.records if getattr(r, 'event_type', None) == 'http_request']

    def test_quiet_paths(self):
        assert is_quiet('/health/ready')
        assert is_quiet('/uploads/documents/a.pdf')
        assert not is_quiet('/api/v1/courses')


class TestSecurityHeaders:

    @pytest.mark.asyncio
    async def test_headers_present(self, client: AsyncClient):
        response = await client.get('/health/live')

        assert response.headers['X-Content-Type-Options'] == 'nosniff'
        assert response.headers['X-Frame-Options'] == 'DENY'


class TestRequestSizeLimit:

    @pytest.fixture
    def small_app(self):
        async def echo(request):
            return PlainTextResponse((await request.body()).decode())

        app = Starlette(routes=[Route('/echo', echo, methods=['POST'])])
        app.add_middleware(RequestSizeLimitMiddleware, max_size=16)
        return app

    @pytest.mark.asyncio
    async def test_oversized_body_rejected(self, small_app):
        async with AsyncClient(transport=ASGITransport(app=small_app), base_url='http://test') as ac:
            response = await ac.post('/echo', content=b'x' * 64)

        assert response.status_code == 413
        body = response.json()
        assert body['success'] is False
        assert body['error']['code'] == 'PAYLOAD_TOO_LARGE'
        assert body['error']['details'] == {'max_size': 16}

    @pytest.mark.asyncio
    async def test_small_body_passes(self, small_app):
        async with AsyncClient(transport=ASGITransport(app=small_app), base_url='http://test') as ac:
            response = await ac.post('/echo', content=b'hello')

        assert response.status_code == 200
        assert response.text == 'hello'
