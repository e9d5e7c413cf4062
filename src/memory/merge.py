"""Read-time merge of persisted facts for prompt injection.

Facts arrive from several sources (local cache, remote store). At read time
they are decayed, ranked by maturity, deduplicated, and trimmed to a
character budget. Nothing here mutates stored data; every call recomputes
from fresh source reads.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

import structlog

from shared_types import Maturity

from .models import ContextEvent, IdentityFact, PageVisit, as_utc, utcnow
from .similarity import similarity
from .sources import FactSourceBase

logger = structlog.get_logger()

MAX_FACT_CHARS = 4000
MAX_PAGE_CHARS = 2000
SIMILARITY_THRESHOLD = 0.7
CONFIDENCE_THRESHOLD = 0.3
CONFIDENCE_HALF_LIFE_DAYS = 60
MAX_SITES = 5

MATURITY_RANK = {
    Maturity.PROVEN: 3,
    Maturity.ESTABLISHED: 2,
    Maturity.CANDIDATE: 1,
}


@dataclass
class MergedContext:
    identity_facts: list[IdentityFact] = field(default_factory=list)
    context_events: list[ContextEvent] = field(default_factory=list)
    failed_sources: list[str] = field(default_factory=list)

    def render(self) -> str:
        """Labeled sections for prompt injection; empty sections are omitted."""
        sections = []
        if self.identity_facts:
            lines = "\n".join(f"- {f.content} [{f.maturity}]" for f in self.identity_facts)
            sections.append(f"About this user:\n{lines}")
        if self.context_events:
            lines = "\n".join(f"- {e.text}" for e in self.context_events)
            sections.append(f"Recent learnings:\n{lines}")
        return "\n\n".join(sections)

    @property
    def is_empty(self) -> bool:
        return not self.identity_facts and not self.context_events


def apply_char_budget(texts: list[str], max_chars: int) -> int:
    """Number of leading items whose combined length fits max_chars.

    Items are never truncated: the walk stops at the first item that would
    overflow the budget.
    """
    total = 0
    count = 0
    for text in texts:
        if total + len(text) > max_chars:
            break
        total += len(text)
        count += 1
    return count


def dedupe_context_events(
    events: list[ContextEvent], threshold: float = SIMILARITY_THRESHOLD
) -> list[ContextEvent]:
    """Collapse near-duplicate events, keeping the later timestamp.

    A replaced item keeps its position in the output.
    """
    result: list[ContextEvent] = []
    for event in events:
        if not event.text:
            continue
        for i, kept in enumerate(result):
            if similarity(event.text, kept.text) >= threshold:
                if event.timestamp > kept.timestamp:
                    result[i] = event
                break
        else:
            result.append(event)
    return result


def rank_identity_facts(
    facts: list[IdentityFact],
    now: datetime,
    confidence_threshold: float = CONFIDENCE_THRESHOLD,
    half_life_days: float = CONFIDENCE_HALF_LIFE_DAYS,
) -> list[IdentityFact]:
    """Drop decayed facts and order survivors proven > established > candidate.

    The same fact id seen from several sources is kept once, preferring the
    most recently validated copy. Sorting is stable within a maturity tier.
    """
    by_id: dict[str, IdentityFact] = {}
    for fact in facts:
        existing = by_id.get(fact.id)
        if existing is None or fact.last_validated > existing.last_validated:
            by_id[fact.id] = fact

    survivors = [
        f
        for f in by_id.values()
        if f.effective_confidence(now, half_life_days) > confidence_threshold
    ]
    return sorted(survivors, key=lambda f: MATURITY_RANK[f.maturity], reverse=True)


class MergedContextBuilder:
    """Combines identity facts and context events from all sources."""

    def __init__(
        self,
        sources: list[FactSourceBase],
        max_fact_chars: int = MAX_FACT_CHARS,
        max_page_chars: int = MAX_PAGE_CHARS,
        similarity_threshold: float = SIMILARITY_THRESHOLD,
        confidence_threshold: float = CONFIDENCE_THRESHOLD,
        half_life_days: float = CONFIDENCE_HALF_LIFE_DAYS,
        max_sites: int = MAX_SITES,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.sources = sources
        self.max_fact_chars = max_fact_chars
        self.max_page_chars = max_page_chars
        self.similarity_threshold = similarity_threshold
        self.confidence_threshold = confidence_threshold
        self.half_life_days = half_life_days
        self.max_sites = max_sites
        self.clock = clock

    async def _gather(self, loader: str, failed: list[str]) -> list:
        """Call `loader` on every source concurrently; failures become empty."""
        results = await asyncio.gather(
            *(getattr(source, loader)() for source in self.sources),
            return_exceptions=True,
        )
        merged = []
        for source, result in zip(self.sources, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "fact_source_failed", source=source.name, loader=loader, error=str(result)
                )
                if source.name not in failed:
                    failed.append(source.name)
                continue
            merged.extend(result)
        return merged

    async def merge_facts_for_injection(self) -> MergedContext:
        failed: list[str] = []
        identity_facts, events = await asyncio.gather(
            self._gather("load_identity_facts", failed),
            self._gather("load_context_events", failed),
        )
        now = as_utc(self.clock())

        ranked = rank_identity_facts(
            identity_facts, now, self.confidence_threshold, self.half_life_days
        )

        deduped = dedupe_context_events(events, self.similarity_threshold)
        deduped.sort(key=lambda e: e.timestamp, reverse=True)
        # Structured identity facts win over raw notes saying the same thing.
        deduped = [
            e
            for e in deduped
            if not any(
                similarity(e.text, f.content) >= self.similarity_threshold for f in ranked
            )
        ]

        texts = [f.content for f in ranked] + [e.text for e in deduped]
        keep = apply_char_budget(texts, self.max_fact_chars)
        merged = MergedContext(
            identity_facts=ranked[:keep],
            context_events=deduped[: max(0, keep - len(ranked))],
            failed_sources=failed,
        )
        logger.debug(
            "facts_merged",
            identity_facts=len(merged.identity_facts),
            context_events=len(merged.context_events),
            dropped=len(texts) - keep,
        )
        return merged

    async def merged_browsing_context(self) -> str:
        """Render recently browsed hostnames from pages merged by URL (latest wins)."""
        pages: list[PageVisit] = await self._gather("load_pages", [])
        by_url: dict[str, PageVisit] = {}
        for page in pages:
            existing = by_url.get(page.url)
            if existing is None or page.timestamp > existing.timestamp:
                by_url[page.url] = page
        ordered = sorted(by_url.values(), key=lambda p: p.timestamp, reverse=True)
        ordered = ordered[: apply_char_budget([p.title or p.url for p in ordered], self.max_page_chars)]

        sites: list[str] = []
        for page in ordered:
            if page.hostname and page.hostname not in sites:
                sites.append(page.hostname)
        if not sites:
            return ""
        return "Recent browsing: " + ", ".join(sites[: self.max_sites])


async def merge_facts_for_injection(sources: list[FactSourceBase], **kwargs) -> MergedContext:
    """Module-level shortcut for MergedContextBuilder(...).merge_facts_for_injection()."""
    return await MergedContextBuilder(sources, **kwargs).merge_facts_for_injection()
