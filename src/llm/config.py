# src/llm/config.py — v2
"""Per-component LLM routing with cascade resolution.

Resolution order:
  1. Per-component env var (LLM_EXTRACTION=openai:gpt-4o)
  2. Default provider + model (LLM_DEFAULT_PROVIDER + LLM_DEFAULT_MODEL)
  3. Hardcoded fallback (anthropic:claude-sonnet-4-6)

The repair component falls back to the extraction assignment before the
defaults, so a single LLM_EXTRACTION override moves both calls.
"""

from __future__ import annotations

from dataclasses import dataclass

from actionextractor.config.settings import Settings

_FALLBACK_PROVIDER = "anthropic"
_FALLBACK_MODEL = "claude-sonnet-4-6"

COMPONENTS = ("extraction", "repair")


@dataclass(frozen=True)
class LLMAssignment:
    """Resolved LLM provider:model for a component."""

    provider: str
    model: str
    source: str  # "component", "inherited", "default", or "fallback"

    @property
    def key(self) -> str:
        """Return 'provider:model' string."""
        return f"{self.provider}:{self.model}"


def _parse_assignment(value: str) -> tuple[str, str] | None:
    """Parse 'provider:model' string. Returns None if empty."""
    if not value or ":" not in value:
        return None
    provider, model = value.split(":", 1)
    return (provider.strip(), model.strip())


def resolve_llm(component: str, settings: Settings) -> LLMAssignment:
    """Resolve LLM assignment for a component.

    Args:
        component: Component name ("extraction" or "repair").
        settings: Application settings.

    Returns:
        Resolved LLMAssignment with provider, model, and resolution source.
    """
    parsed = _parse_assignment(getattr(settings, f"llm_{component}", ""))
    if parsed:
        return LLMAssignment(provider=parsed[0], model=parsed[1], source="component")

    if component == "repair":
        parsed = _parse_assignment(settings.llm_extraction)
        if parsed:
            return LLMAssignment(provider=parsed[0], model=parsed[1], source="inherited")

    if settings.llm_default_provider and settings.llm_default_model:
        return LLMAssignment(
            provider=settings.llm_default_provider,
            model=settings.llm_default_model,
            source="default",
        )

    return LLMAssignment(
        provider=_FALLBACK_PROVIDER,
        model=_FALLBACK_MODEL,
        source="fallback",
    )


def resolve_all(settings: Settings) -> dict[str, LLMAssignment]:
    """Resolve LLM assignments for every component."""
    return {comp: resolve_llm(comp, settings) for comp in COMPONENTS}
