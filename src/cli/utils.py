"""Shared CLI utilities."""

import sys

import structlog
from rich.console import Console

console = Console()
logger = structlog.get_logger()


def get_components(skip_llm: bool = False):
    """Initialize storages, sources and the onboarding service from config.

    Args:
        skip_llm: If True, skip provider init (for commands that only read data)
    """
    from cli.config import get_paths, load_config_model
    from interview import (
        BranchQuestionGenerator,
        FactExtractor,
        InterviewStateStorage,
        OnboardingService,
    )
    from llm import LLMError, create_cheap_provider
    from memory import ContextStorage, IdentityStorage, LocalFactSource, RemoteFactSource

    config = load_config_model()
    paths = get_paths(config)

    identity_storage = IdentityStorage(paths["identity"])
    context_storage = ContextStorage(paths["context"])
    state_storage = InterviewStateStorage(paths["interview_state"])

    remote = None
    if config.remote.enabled:
        remote = RemoteFactSource(
            config.remote.url,
            config.remote.api_key or "",
            access_token=config.remote.access_token,
            timeout=config.remote.timeout,
        )

    sources = [LocalFactSource(identity_storage, context_storage)]
    if remote:
        sources.append(remote)

    service = None
    if not skip_llm:
        try:
            provider = create_cheap_provider(
                provider=config.llm.provider,
                api_key=config.llm.api_key,
                model=config.llm.model,
            )
        except LLMError as e:
            console.print(f"[red]Config error:[/] {e}")
            sys.exit(1)

        service = OnboardingService(
            FactExtractor(
                provider,
                min_answer_chars=config.interview.min_answer_chars,
                max_tokens=config.llm.max_tokens,
            ),
            BranchQuestionGenerator(provider, max_tokens=config.llm.max_tokens),
            state_storage,
            identity_storage,
            remote=remote,
            max_branch_questions=config.interview.max_branch_questions,
            host_fact_confidence=config.interview.host_fact_confidence,
        )

    return {
        "config": config,
        "paths": paths,
        "identity_storage": identity_storage,
        "context_storage": context_storage,
        "state_storage": state_storage,
        "remote": remote,
        "sources": sources,
        "service": service,
    }


def merged_context_builder(c: dict):
    """MergedContextBuilder configured from the injection settings."""
    from memory import MergedContextBuilder

    inj = c["config"].injection
    return MergedContextBuilder(
        c["sources"],
        max_fact_chars=inj.max_fact_chars,
        max_page_chars=inj.max_page_chars,
        similarity_threshold=inj.similarity_threshold,
        confidence_threshold=inj.confidence_threshold,
        half_life_days=inj.half_life_days,
        max_sites=inj.max_sites,
    )
