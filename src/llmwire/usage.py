"""
Token usage tracking for decoded provider turns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class UsageStats:
    """
    Token usage reported for a single exchange.

    Attributes:
        prompt_tokens: Number of tokens in the prompt/input.
        completion_tokens: Number of tokens in the completion/output.
        total_tokens: Total tokens used (prompt + completion).
        model: Model name reported by (or sent to) the provider.
        provider: Adapter name (openai, anthropic, ollama, gemini).
    """

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    model: str = ""
    provider: str = ""

    def __post_init__(self) -> None:
        """Ensure total_tokens is consistent."""
        if self.total_tokens == 0 and (self.prompt_tokens or self.completion_tokens):
            object.__setattr__(self, "total_tokens", self.prompt_tokens + self.completion_tokens)


@dataclass
class ChatUsage:
    """
    Aggregates usage stats across the turns of one conversation.

    Attributes:
        total_prompt_tokens: Cumulative prompt tokens across all turns.
        total_completion_tokens: Cumulative completion tokens across all turns.
        total_tokens: Cumulative total tokens across all turns.
        turns: UsageStats for each recorded turn.
    """

    total_prompt_tokens: int = 0
    total_completion_tokens: int = 0
    total_tokens: int = 0
    turns: List[UsageStats] = field(default_factory=list)

    def add_usage(self, stats: UsageStats) -> None:
        """Add usage stats from a single turn."""
        self.total_prompt_tokens += stats.prompt_tokens
        self.total_completion_tokens += stats.completion_tokens
        self.total_tokens += stats.total_tokens
        self.turns.append(stats)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary for logging/display."""
        return {
            "total_tokens": self.total_tokens,
            "total_prompt_tokens": self.total_prompt_tokens,
            "total_completion_tokens": self.total_completion_tokens,
            "turns": len(self.turns),
        }

    def __str__(self) -> str:
        lines = [
            "\n" + "=" * 60,
            "📊 Usage Summary",
            "=" * 60,
            f"Total Tokens: {self.total_tokens:,}",
            f"  - Prompt: {self.total_prompt_tokens:,}",
            f"  - Completion: {self.total_completion_tokens:,}",
            f"Turns: {len(self.turns)}",
            "=" * 60 + "\n",
        ]
        return "\n".join(lines)


__all__ = ["UsageStats", "ChatUsage"]
