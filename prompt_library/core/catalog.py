"""Model catalog — pricing and characteristics of supported language models."""

from __future__ import annotations

from dataclasses import dataclass, field

SPEED_ORDER = {"very-fast": 0, "fast": 1, "medium": 2, "slow": 3}
QUALITY_ORDER = {"good": 0, "great": 1, "excellent": 2, "best": 3}


@dataclass(frozen=True)
class ModelInfo:
    """Static description of one model."""

    id: str
    name: str
    provider: str
    cost_per_1k_input: float
    cost_per_1k_output: float
    max_tokens: int
    context_window: int
    speed: str  # very-fast/fast/medium/slow
    quality: str  # good/great/excellent/best
    capabilities: tuple[str, ...] = field(default_factory=tuple)
    best_for: tuple[str, ...] = field(default_factory=tuple)
    description: str = ""


MODEL_CATALOG: dict[str, ModelInfo] = {
    m.id: m
    for m in (
        ModelInfo(
            id="claude-3-5-sonnet-20241022",
            name="Claude 3.5 Sonnet",
            provider="Anthropic",
            cost_per_1k_input=0.003,
            cost_per_1k_output=0.015,
            max_tokens=8192,
            context_window=200_000,
            speed="fast",
            quality="excellent",
            capabilities=("reasoning", "coding", "analysis", "writing", "vision"),
            best_for=("Complex reasoning", "Code generation", "Analysis", "General use"),
            description="Balanced model with excellent performance across all tasks",
        ),
        ModelInfo(
            id="claude-3-5-haiku-20241022",
            name="Claude 3.5 Haiku",
            provider="Anthropic",
            cost_per_1k_input=0.001,
            cost_per_1k_output=0.005,
            max_tokens=8192,
            context_window=200_000,
            speed="very-fast",
            quality="great",
            capabilities=("reasoning", "coding", "writing", "vision"),
            best_for=("Quick tasks", "High volume", "Cost-sensitive", "Real-time"),
            description="Fast and affordable model for everyday tasks",
        ),
        ModelInfo(
            id="claude-3-opus-20240229",
            name="Claude 3 Opus",
            provider="Anthropic",
            cost_per_1k_input=0.015,
            cost_per_1k_output=0.075,
            max_tokens=4096,
            context_window=200_000,
            speed="slow",
            quality="best",
            capabilities=("reasoning", "coding", "analysis", "writing", "vision", "complex-tasks"),
            best_for=("Complex reasoning", "Research", "Critical tasks", "Highest quality"),
            description="Most capable model for complex and nuanced tasks",
        ),
        ModelInfo(
            id="gpt-4-turbo",
            name="GPT-4 Turbo",
            provider="OpenAI",
            cost_per_1k_input=0.01,
            cost_per_1k_output=0.03,
            max_tokens=4096,
            context_window=128_000,
            speed="medium",
            quality="excellent",
            capabilities=("reasoning", "coding", "analysis", "writing", "vision"),
            best_for=("Complex tasks", "Long context", "Multimodal"),
            description="GPT-4 with vision and extended context",
        ),
        ModelInfo(
            id="gpt-4",
            name="GPT-4",
            provider="OpenAI",
            cost_per_1k_input=0.03,
            cost_per_1k_output=0.06,
            max_tokens=8192,
            context_window=8192,
            speed="slow",
            quality="excellent",
            capabilities=("reasoning", "coding", "analysis", "writing"),
            best_for=("Complex reasoning", "Highest accuracy"),
            description="Original GPT-4 model with proven reliability",
        ),
        ModelInfo(
            id="gpt-3.5-turbo",
            name="GPT-3.5 Turbo",
            provider="OpenAI",
            cost_per_1k_input=0.0005,
            cost_per_1k_output=0.0015,
            max_tokens=4096,
            context_window=16_385,
            speed="very-fast",
            quality="good",
            capabilities=("writing", "coding", "analysis"),
            best_for=("Quick tasks", "High volume", "Cost-sensitive"),
            description="Fast and affordable for simple tasks",
        ),
        ModelInfo(
            id="gemini-1.5-pro",
            name="Gemini 1.5 Pro",
            provider="Google",
            cost_per_1k_input=0.00125,
            cost_per_1k_output=0.005,
            max_tokens=8192,
            context_window=2_000_000,
            speed="medium",
            quality="excellent",
            capabilities=("reasoning", "coding", "analysis", "writing", "vision", "audio"),
            best_for=("Long context", "Multimodal", "Document analysis"),
            description="Massive context window for large documents",
        ),
        ModelInfo(
            id="gemini-1.5-flash",
            name="Gemini 1.5 Flash",
            provider="Google",
            cost_per_1k_input=0.000075,
            cost_per_1k_output=0.0003,
            max_tokens=8192,
            context_window=1_000_000,
            speed="very-fast",
            quality="great",
            capabilities=("reasoning", "coding", "writing", "vision"),
            best_for=("High volume", "Real-time", "Cost-sensitive"),
            description="Ultra-fast and affordable with large context",
        ),
        ModelInfo(
            id="mistral-large",
            name="Mistral Large",
            provider="Mistral AI",
            cost_per_1k_input=0.004,
            cost_per_1k_output=0.012,
            max_tokens=8192,
            context_window=128_000,
            speed="fast",
            quality="excellent",
            capabilities=("reasoning", "coding", "writing", "multilingual"),
            best_for=("Multilingual", "Coding", "European languages"),
            description="Strong multilingual capabilities",
        ),
        ModelInfo(
            id="mistral-medium",
            name="Mistral Medium",
            provider="Mistral AI",
            cost_per_1k_input=0.0027,
            cost_per_1k_output=0.0081,
            max_tokens=8192,
            context_window=32_000,
            speed="fast",
            quality="great",
            capabilities=("reasoning", "coding", "writing"),
            best_for=("Balanced performance", "General use"),
            description="Balanced performance and cost",
        ),
    )
}

DEFAULT_MODELS = {
    "FAST_AND_CHEAP": "claude-3-5-haiku-20241022",
    "BALANCED": "claude-3-5-sonnet-20241022",
    "BEST_QUALITY": "claude-3-opus-20240229",
    "LONG_CONTEXT": "gemini-1.5-pro",
}


def calculate_cost(model_id: str, input_tokens: int, output_tokens: int = 0) -> float:
    """Estimated cost in dollars; unknown models cost 0."""
    model = MODEL_CATALOG.get(model_id)
    if model is None:
        return 0.0
    return (input_tokens / 1000) * model.cost_per_1k_input + (
        output_tokens / 1000
    ) * model.cost_per_1k_output


def models_by_provider(provider: str) -> list[ModelInfo]:
    return [m for m in MODEL_CATALOG.values() if m.provider == provider]


def providers() -> list[str]:
    return sorted({m.provider for m in MODEL_CATALOG.values()})


def compare_costs(
    model_ids: list[str], input_tokens: int, output_tokens: int = 0
) -> dict[str, float]:
    return {mid: calculate_cost(mid, input_tokens, output_tokens) for mid in model_ids}


def recommend_model(
    max_cost: float | None = None,
    min_speed: str | None = None,
    min_quality: str | None = None,
    capabilities: list[str] | None = None,
) -> list[ModelInfo]:
    """Models matching every given criterion, cheapest input price first.

    ``max_cost`` caps the per-1k input price. ``min_speed`` keeps models at
    least that fast; ``min_quality`` keeps models at least that good.
    """
    models = list(MODEL_CATALOG.values())

    if capabilities:
        models = [m for m in models if all(c in m.capabilities for c in capabilities)]
    if min_speed is not None:
        if min_speed not in SPEED_ORDER:
            raise ValueError(f"Unknown speed '{min_speed}'")
        models = [m for m in models if SPEED_ORDER[m.speed] <= SPEED_ORDER[min_speed]]
    if min_quality is not None:
        if min_quality not in QUALITY_ORDER:
            raise ValueError(f"Unknown quality '{min_quality}'")
        models = [m for m in models if QUALITY_ORDER[m.quality] >= QUALITY_ORDER[min_quality]]
    if max_cost is not None:
        models = [m for m in models if m.cost_per_1k_input <= max_cost]

    return sorted(models, key=lambda m: m.cost_per_1k_input)
