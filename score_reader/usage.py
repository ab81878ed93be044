"""
Usage Ledger Module

Records token usage, latency and estimated cost for each recognition engine call.
One ledger belongs to one transcription session; nothing is shared between uploads.
"""

from dataclasses import dataclass, field


# Pricing per 1M tokens (update as needed)
PRICING = {
    "gpt-4o": {
        "input": 2.50,
        "output": 10.00,
    },
    "gpt-4o-mini": {
        "input": 0.15,
        "output": 0.60,
    },
    "gemini-2.0-flash": {
        "input": 0.10,
        "output": 0.40,
    },
    "gemini-2.5-flash": {
        "input": 0.30,
        "output": 2.50,
    },
    "default": {
        "input": 0.15,
        "output": 0.60,
    }
}


@dataclass
class EngineCall:
    """Record of a single engine call."""
    stage: str
    model: str
    input_tokens: int
    output_tokens: int
    duration_ms: float
    cost: float


@dataclass
class UsageLedger:
    """Per-session record of engine calls."""

    calls: list[EngineCall] = field(default_factory=list)

    def add_call(
        self,
        stage: str,
        model: str,
        input_tokens: int,
        output_tokens: int,
        duration_ms: float
    ) -> EngineCall:
        """Record an engine call and return the entry."""
        pricing = PRICING.get(model, PRICING["default"])
        cost = (input_tokens / 1_000_000) * pricing["input"] + (output_tokens / 1_000_000) * pricing["output"]

        call = EngineCall(
            stage=stage,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            duration_ms=duration_ms,
            cost=cost,
        )
        self.calls.append(call)
        return call

    @property
    def total_tokens(self) -> int:
        return sum(c.input_tokens + c.output_tokens for c in self.calls)

    @property
    def total_cost(self) -> float:
        return sum(c.cost for c in self.calls)

    @property
    def total_duration_ms(self) -> float:
        return sum(c.duration_ms for c in self.calls)

    def get_stage_summary(self) -> dict[str, dict]:
        """Cost breakdown by stage."""
        summary = {}
        for call in self.calls:
            stage = summary.setdefault(call.stage, {
                "calls": 0,
                "input_tokens": 0,
                "output_tokens": 0,
                "cost": 0.0,
                "duration_ms": 0.0,
            })
            stage["calls"] += 1
            stage["input_tokens"] += call.input_tokens
            stage["output_tokens"] += call.output_tokens
            stage["cost"] += call.cost
            stage["duration_ms"] += call.duration_ms
        return summary

    def to_dict(self) -> dict:
        """Export as dictionary for JSON serialization."""
        return {
            "total_tokens": self.total_tokens,
            "total_cost_usd": round(self.total_cost, 6),
            "total_duration_ms": round(self.total_duration_ms, 2),
            "stages": self.get_stage_summary(),
        }


def extract_gemini_usage(response) -> tuple[int, int]:
    """Token counts from a Gemini response, or (0, 0) when absent."""
    usage = getattr(response, "usage_metadata", None)
    if usage is None:
        return (0, 0)
    return (
        int(getattr(usage, "prompt_token_count", 0) or 0),
        int(getattr(usage, "candidates_token_count", 0) or 0),
    )


def extract_openai_usage(response) -> tuple[int, int]:
    """Token counts from an OpenAI chat completion, or (0, 0) when absent."""
    usage = getattr(response, "usage", None)
    if usage is None:
        return (0, 0)
    return (
        int(getattr(usage, "prompt_tokens", 0) or 0),
        int(getattr(usage, "completion_tokens", 0) or 0),
    )
