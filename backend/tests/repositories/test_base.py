"""BaseRepository tests

CRUD over the primary store models on a temporary database.
"""

from typing import Generic

import pytest

from helan_chat.models import ScrapedContent
from helan_chat.models.base import utcnow
from helan_chat.repositories.base import BaseRepository
from helan_chat.repositories.content import ScrapedContentRepository


def page(url: str) -> ScrapedContent:
    return ScrapedContent(url=url, title="t", content="c", last_scraped=utcnow())


def test_is_generic_class():
    assert issubclass(BaseRepository, Generic)
    assert ScrapedContentRepository.model is ScrapedContent


@pytest.mark.anyio
async def test_crud(session_factories):
    primary, _ = session_factories
    async with primary() as session:
        repo = ScrapedContentRepository(session)

        created = await repo.create(page("https://helan.be/a"))
        await repo.create(page("https://helan.be/b"))
        assert created.id is not None
        assert created.is_active is True
        assert await repo.get_by_id(created.id) is created

        updated = await repo.update(created, title="Nieuw")
        assert updated.title == "Nieuw"

        assert len(await repo.get_all()) == 2
        assert len(await repo.get_all(offset=1, limit=10)) == 1

        await repo.delete(created)
        assert await repo.get_by_id(created.id) is None
        await session.commit()
