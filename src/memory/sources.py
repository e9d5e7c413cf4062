"""Fact sources for the read-time merge: local JSON cache and a remote REST store."""

import asyncio
from abc import ABC, abstractmethod

import httpx
import structlog
from pydantic import ValidationError

from cli.retry import http_retry
from shared_types import ContextEventType

from .models import ContextEvent, IdentityFact, IdentityRecord, PageVisit
from .storage import ContextStorage, IdentityStorage

logger = structlog.get_logger()


class FactSourceBase(ABC):
    """One origin of persisted facts. Implementations may raise freely;
    the merge layer treats any failure as an empty source."""

    name: str = "base"

    @abstractmethod
    async def load_identity_facts(self) -> list[IdentityFact]: ...

    @abstractmethod
    async def load_context_events(self) -> list[ContextEvent]: ...

    @abstractmethod
    async def load_pages(self) -> list[PageVisit]: ...


class LocalFactSource(FactSourceBase):
    """Reads identity.json and context.json from the local data dir."""

    name = "local"

    def __init__(self, identity_storage: IdentityStorage, context_storage: ContextStorage):
        self.identity_storage = identity_storage
        self.context_storage = context_storage

    async def load_identity_facts(self) -> list[IdentityFact]:
        identity = await asyncio.to_thread(self.identity_storage.load)
        return list(identity.facts) if identity else []

    async def load_context_events(self) -> list[ContextEvent]:
        store = await asyncio.to_thread(self.context_storage.load)
        return [e for e in store.events if e.type != ContextEventType.PAGE_VISIT]

    async def load_pages(self) -> list[PageVisit]:
        store = await asyncio.to_thread(self.context_storage.load)
        return list(store.pages)


class RemoteFactSource(FactSourceBase):
    """Async client for a PostgREST-style store with `identities` and
    `context_events` tables.

    The caller-supplied timeout bounds every request so a slow remote never
    holds up local-only results for long.
    """

    name = "remote"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        access_token: str | None = None,
        timeout: float = 5.0,
        event_limit: int = 100,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.event_limit = event_limit
        headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {access_token or api_key}",
        }
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = headers

    async def aclose(self) -> None:
        await self.client.aclose()

    @http_retry(exceptions=(httpx.TransportError,))
    async def _get(self, table: str, params: dict) -> list[dict]:
        response = await self.client.get(
            f"{self.base_url}/rest/v1/{table}", params=params, headers=self._headers
        )
        response.raise_for_status()
        rows = response.json()
        return rows if isinstance(rows, list) else []

    async def load_identity(self) -> IdentityRecord | None:
        rows = await self._get("identities", {"select": "data", "limit": "1"})
        if not rows or not rows[0].get("data"):
            return None
        try:
            return IdentityRecord.model_validate(rows[0]["data"])
        except ValidationError as e:
            logger.warning("remote_identity_invalid", error=str(e))
            return None

    async def load_identity_facts(self) -> list[IdentityFact]:
        identity = await self.load_identity()
        return list(identity.facts) if identity else []

    async def _load_events(self, type_filter: str) -> list[ContextEvent]:
        rows = await self._get(
            "context_events",
            {
                "select": "*",
                "type": type_filter,
                "order": "timestamp.desc",
                "limit": str(self.event_limit),
            },
        )
        events = []
        for row in rows:
            try:
                events.append(ContextEvent.model_validate(row))
            except ValidationError:
                logger.debug("remote_event_skipped", event_id=row.get("id"))
        return events

    async def load_context_events(self) -> list[ContextEvent]:
        return await self._load_events(f"neq.{ContextEventType.PAGE_VISIT}")

    async def load_pages(self) -> list[PageVisit]:
        pages = []
        for event in await self._load_events(f"eq.{ContextEventType.PAGE_VISIT}"):
            url = event.data.get("url")
            if not url:
                continue
            pages.append(
                PageVisit(
                    url=url,
                    title=event.data.get("title", ""),
                    hostname=event.data.get("hostname", ""),
                    timestamp=event.timestamp,
                )
            )
        return pages

    async def save_identity(self, identity: IdentityRecord) -> None:
        """Upsert the identity document.

        Raises:
            httpx.HTTPError: on transport failure or non-2xx status
        """
        response = await self.client.post(
            f"{self.base_url}/rest/v1/identities",
            params={"on_conflict": "user_id"},
            headers={**self._headers, "Prefer": "resolution=merge-duplicates"},
            json={"data": identity.model_dump(mode="json"), "version": identity.version},
        )
        response.raise_for_status()
