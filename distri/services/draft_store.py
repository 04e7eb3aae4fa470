# Pending selections between the map step and the submission, stored in redis with a TTL

from typing import Any

from distri.core import config
from distri.schemas.participation import Draft

KEY_PREFIX = "draft:"


class DraftNotFound(Exception):
    def __init__(self, draft_id: str):
        super().__init__(draft_id)
        self.message = "Sélection introuvable ou expirée"
        self.status_code = 404


class DraftStore:
    def __init__(self, client: Any, ttl_sec: int | None = None):
        self.client = client
        self.ttl_sec = ttl_sec or config.DRAFT_TTL_SEC

    @staticmethod
    def _key(draft_id: str) -> str:
        return f"{KEY_PREFIX}{draft_id}"

    async def save(self, draft: Draft) -> Draft:
        await self.client.setex(self._key(draft.id), self.ttl_sec, draft.model_dump_json())
        return draft

    async def get(self, draft_id: str) -> Draft:
        raw = await self.client.get(self._key(draft_id))
        if raw is None:
            raise DraftNotFound(draft_id)
        return Draft.model_validate_json(raw)

    async def delete(self, draft_id: str) -> None:
        await self.client.delete(self._key(draft_id))
