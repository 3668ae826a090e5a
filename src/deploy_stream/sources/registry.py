"""Source registry.

Adding a new source:
1) implement a FragmentSource subclass in `deploy_stream.sources.*`
2) register it here under a new `kind` key (static) OR use register_source() (dynamic)
3) reference it in the deploy config (`projects[].source.kind`)

Dynamic registration allows adding sources at runtime without modifying this file.
"""

from __future__ import annotations
from typing import Callable, Dict, Optional
from .base import FragmentSource, SourceSpec
from .local_text import LocalTextSource
from .scripted import ScriptedSource
from ..pipeline.context import ProjectConfig

SourceFactory = Callable[[SourceSpec, Optional[ProjectConfig]], FragmentSource]


# Lazy import for the Gemini source (optional dependency)
def _make_gemini_source(spec: SourceSpec, config: Optional[ProjectConfig]) -> FragmentSource:
    """Lazy import Gemini source."""
    try:
        from .gemini import GeminiSource
    except ImportError as e:
        raise ImportError(
            f"Google GenAI SDK not available. "
            f"Install with: pip install google-genai. "
            f"Original error: {e}"
        )
    return GeminiSource(spec, config)


# Static registry (built-in sources)
_STATIC_REGISTRY: Dict[str, SourceFactory] = {
    "scripted": lambda spec, config: ScriptedSource(spec, config),
    "local_text": lambda spec, config: LocalTextSource(spec, config),
    "gemini": _make_gemini_source,
}

# Dynamic registry (plugins/extensions)
_DYNAMIC_REGISTRY: Dict[str, SourceFactory] = {}


def register_source(kind: str, factory: SourceFactory) -> None:
    """Register a new source type dynamically.

    Args:
        kind: Source kind identifier (e.g., "kafka_tail", "openai")
        factory: Function taking (SourceSpec, ProjectConfig | None) and returning a FragmentSource

    Example:
        from deploy_stream.sources.registry import register_source

        register_source("my_llm", lambda spec, config: MyLLMSource(spec, config))
    """
    if kind in _STATIC_REGISTRY:
        raise ValueError(f"Source kind '{kind}' is already registered statically. Use a different name.")
    _DYNAMIC_REGISTRY[kind] = factory


def unregister_source(kind: str) -> None:
    """Unregister a dynamically registered source."""
    if kind in _DYNAMIC_REGISTRY:
        del _DYNAMIC_REGISTRY[kind]


def list_sources() -> Dict[str, str]:
    """List all registered sources (static + dynamic)."""
    all_sources = {}
    for kind in _STATIC_REGISTRY:
        all_sources[kind] = "static"
    for kind in _DYNAMIC_REGISTRY:
        all_sources[kind] = "dynamic"
    return all_sources


def make_source(spec: SourceSpec, config: Optional[ProjectConfig] = None) -> FragmentSource:
    """Create a source instance from spec.

    Checks static registry first, then dynamic registry.
    """
    if spec.kind in _STATIC_REGISTRY:
        return _STATIC_REGISTRY[spec.kind](spec, config)

    if spec.kind in _DYNAMIC_REGISTRY:
        return _DYNAMIC_REGISTRY[spec.kind](spec, config)

    available = list(_STATIC_REGISTRY.keys()) + list(_DYNAMIC_REGISTRY.keys())
    raise ValueError(
        f"Unknown source kind: {spec.kind}. "
        f"Available: {available}. "
        f"Register dynamically with register_source() or add to registry.py"
    )


def is_registered(kind: str) -> bool:
    return kind in _STATIC_REGISTRY or kind in _DYNAMIC_REGISTRY
