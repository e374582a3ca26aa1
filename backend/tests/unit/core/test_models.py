"""
Unit Tests for ORM mapping
"""
import pytest
from sqlalchemy import select
from sqlalchemy.orm import configure_mappers, selectinload

import app.models  # noqa: F401
from app.models.user import User, UserDocument


class TestMappers:

    def test_all_mappers_configure(self):
        configure_mappers()

    def test_documents_join_on_owner(self):
        configure_mappers()

        assert {column.name for column in User.documents.property.remote_side} == {'user_id'}


class TestUserDocuments:

    @pytest.mark.asyncio
    async def test_verifier_does_not_own_document(self, db_session, student_user, admin_user):
        db_session.add(UserDocument(
            user_id=student_user.id,
            name='transcript.pdf',
            file_url='/uploads/documents/transcript.pdf',
            verified=True,
            verified_by_id=admin_user.id,
        ))
        await db_session.commit()

        users = (await db_session.execute(
            select(User).options(selectinload(User.documents)).where(User.id.in_([student_user.id, admin_user.id]))
            .execution_options(populate_existing=True)
        )).scalars().all()
        documents = {user.id: [doc.name for doc in user.documents] for user in users}

        assert documents[student_user.id] == ['transcript.pdf']
        assert documents[admin_user.id] == []
