"""
Unit Tests for Forum API Endpoints
"""
import pytest
from httpx import AsyncClient


@pytest.fixture
async def forum(client: AsyncClient, faculty_headers) -> dict:
    response = await client.post('/api/v1/forums', json={
        'title': 'CS101 Help',
        'description': 'Questions about the first assignment',
    }, headers=faculty_headers)
    assert response.status_code == 201
    return response.json()['data']


@pytest.fixture
async def topic(client: AsyncClient, forum, student_headers) -> dict:
    response = await client.post(f"/api/v1/forums/{forum['id']}/topics", json={
        'title': 'Loop question',
        'content': 'Why does my loop never end?',
    }, headers=student_headers)
    assert response.status_code == 201
    return response.json()['data']


class TestForums:

    @pytest.mark.asyncio
    async def test_inactive_forum_rejects_topics(self, client: AsyncClient, forum, faculty_headers, student_headers):
        await client.put(f"/api/v1/forums/{forum['id']}", json={'is_active': False}, headers=faculty_headers)

        response = await client.post(f"/api/v1/forums/{forum['id']}/topics", json={
            'title': 'Late', 'content': 'Anyone here?',
        }, headers=student_headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_inactive_forum_hidden_from_list(self, client: AsyncClient, forum, faculty_headers, student_headers):
        await client.put(f"/api/v1/forums/{forum['id']}", json={'is_active': False}, headers=faculty_headers)

        response = await client.get('/api/v1/forums', headers=student_headers)

        assert response.json()['total'] == 0

    @pytest.mark.asyncio
    async def test_non_owner_cannot_delete(self, client: AsyncClient, forum, student_headers):
        response = await client.delete(f"/api/v1/forums/{forum['id']}", headers=student_headers)

        assert response.status_code == 403


class TestTopics:

    @pytest.mark.asyncio
    async def test_read_counts_views(self, client: AsyncClient, forum, topic, student_headers):
        url = f"/api/v1/forums/{forum['id']}/topics/{topic['id']}"

        await client.get(url, headers=student_headers)
        response = await client.get(url, headers=student_headers)

        assert response.json()['data']['views'] == 2

    @pytest.mark.asyncio
    async def test_author_cannot_pin(self, client: AsyncClient, forum, topic, student_headers):
        response = await client.put(
            f"/api/v1/forums/{forum['id']}/topics/{topic['id']}",
            json={'title': 'Loop question (solved)', 'is_pinned': True},
            headers=student_headers
        )

        assert response.status_code == 200
        assert response.json()['data']['title'] == 'Loop question (solved)'
        assert response.json()['data']['is_pinned'] is False

    @pytest.mark.asyncio
    async def test_pinned_topics_first(self, client: AsyncClient, forum, topic, student_headers, admin_headers):
        await client.post(f"/api/v1/forums/{forum['id']}/topics", json={
            'title': 'Newer topic', 'content': 'Something else',
        }, headers=student_headers)
        await client.put(
            f"/api/v1/forums/{forum['id']}/topics/{topic['id']}", json={'is_pinned': True}, headers=admin_headers
        )

        response = await client.get(f"/api/v1/forums/{forum['id']}", headers=student_headers)

        assert response.json()['data']['topics'][0]['id'] == topic['id']


class TestReplies:

    @pytest.mark.asyncio
    async def test_locked_topic_rejects_replies(self, client: AsyncClient, forum, topic, admin_headers, student_headers):
        url = f"/api/v1/forums/{forum['id']}/topics/{topic['id']}"
        await client.put(url, json={'is_locked': True}, headers=admin_headers)

        response = await client.post(f'{url}/replies', json={'content': 'Me too'}, headers=student_headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_deleted_reply_hidden(self, client: AsyncClient, forum, topic, faculty_headers):
        url = f"/api/v1/forums/{forum['id']}/topics/{topic['id']}"
        reply = await client.post(f'{url}/replies', json={'content': 'Check your condition'}, headers=faculty_headers)
        reply_id = reply.json()['data']['id']

        deleted = await client.delete(f'{url}/replies/{reply_id}', headers=faculty_headers)
        detail = await client.get(url, headers=faculty_headers)

        assert deleted.status_code == 200
        assert detail.json()['data']['replies'] == []

    @pytest.mark.asyncio
    async def test_only_author_deletes_reply(self, client: AsyncClient, forum, topic, faculty_headers, student_headers):
        url = f"/api/v1/forums/{forum['id']}/topics/{topic['id']}"
        reply = await client.post(f'{url}/replies', json={'content': 'Check your condition'}, headers=faculty_headers)

        response = await client.delete(f"{url}/replies/{reply.json()['data']['id']}", headers=student_headers)

        assert response.status_code == 403


class TestLikes:

    @pytest.mark.asyncio
    async def test_like_toggles(self, client: AsyncClient, forum, topic, faculty_headers, student_headers):
        url = f"/api/v1/forums/{forum['id']}/topics/{topic['id']}/like"

        first = await client.post(url, headers=student_headers)
        second = await client.post(url, headers=faculty_headers)
        third = await client.post(url, headers=student_headers)

        assert first.json()['data'] == {'liked': True, 'like_count': 1}
        assert second.json()['data'] == {'liked': True, 'like_count': 2}
        assert third.json()['data'] == {'liked': False, 'like_count': 1}
