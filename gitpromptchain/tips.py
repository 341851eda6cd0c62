"""
Prompting tips derived from chain metrics.

Two generators:
- BuiltinTipGenerator: local heuristics, always available
- LLMTipGenerator: OpenAI or Anthropic, only when a credential is configured

generate_tips() tries the LLM generator and falls back to the built-in one;
it never raises.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

import anthropic
import openai

if TYPE_CHECKING:
    from .config import TipsConfig
    from .models import PromptChain, PromptChainMetrics

logger = logging.getLogger(__name__)

TIPS_SYSTEM_PROMPT = " ".join([
    "You are an expert AI assistant that analyzes developer prompt chains and code change "
    "metrics to provide concise, actionable prompting tips.",
    "Use a friendly, constructive tone. Return a short list (4-7 bullets).",
    "Focus on: prompt length, style (questions vs commands), specificity, modification "
    "efficiency, and scope management.",
])

NO_TIPS_TEXT = "No tips generated."


class TipError(Exception):
    """Tip generation failed."""
    pass


class Provider(Enum):
    """LLM provider for tips."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class TipGenerator(Protocol):
    def generate(self, metrics: "PromptChainMetrics", chain: "PromptChain") -> str:
        ...


class BuiltinTipGenerator:
    """Heuristic tips from prompt length, style mix, change rate and scope."""

    SHORT_PROMPT_CHARS = 20
    LONG_PROMPT_CHARS = 200
    DOMINANT_STYLE_RATIO = 0.7
    LOW_CHANGE_RATE = 0.3
    HIGH_CHANGE_RATE = 0.8
    WIDE_SCOPE_FILES = 5

    def generate(self, metrics: "PromptChainMetrics", chain: "PromptChain") -> str:
        tips = ["Prompting tips based on your metrics:", ""]

        avg = metrics.prompts.avg_length_chars
        if avg < self.SHORT_PROMPT_CHARS:
            tips.append(f"   Prompt length: Your prompts are quite short (avg {avg} chars)")
            tips.append("      → Add more context and specifics for better responses")
        elif avg > self.LONG_PROMPT_CHARS:
            tips.append(f"   Prompt length: Your prompts are quite long (avg {avg} chars)")
            tips.append("      → Break complex requests into smaller, focused steps")
        else:
            tips.append(f"   Prompt length: Great (avg {avg} chars is ideal)")
        tips.append("")

        styles = metrics.prompts.style_counts
        total = styles.interrogative + styles.imperative + styles.narrative
        questions = styles.interrogative / total if total else 0
        commands = styles.imperative / total if total else 0
        if questions > self.DOMINANT_STYLE_RATIO:
            tips.append(f"   Prompt style: You ask many questions ({round(questions * 100)}%)")
            tips.append("      → Try more direct commands for action (Add/Update/Fix)")
        elif commands > self.DOMINANT_STYLE_RATIO:
            tips.append(f"   Prompt style: You use direct commands ({round(commands * 100)}%)")
        else:
            tips.append("   Prompt style: Good mix of questions and commands")
        tips.append("")

        if chain.steps:
            change_rate = metrics.modification_steps / len(chain.steps)
            if change_rate < self.LOW_CHANGE_RATE:
                tips.append(f"   Results: Only {round(change_rate * 100)}% of prompts resulted in changes")
                tips.append("      → Be specific about WHAT to modify and WHERE")
                tips.append("")
            elif change_rate > self.HIGH_CHANGE_RATE:
                tips.append(f"   Results: {round(change_rate * 100)}% of prompts led to changes")
                tips.append("")

        if metrics.unique_files_changed > self.WIDE_SCOPE_FILES:
            tips.append(f"   Scope: You modified {metrics.unique_files_changed} files")
            tips.append("      → Consider smaller focused chains for easier review")
            tips.append("")

        return "\n".join(tips).rstrip() + "\n"


def build_tips_request(metrics: "PromptChainMetrics", chain: "PromptChain") -> str:
    """JSON payload sent to the LLM: metrics plus chain id, summary and prompts."""
    payload = {
        "metrics": metrics.model_dump(by_alias=True),
        "chain": {
            "chainId": chain.chain_id,
            "summary": chain.summary,
            "steps": [{"id": s.id, "prompt": s.prompt} for s in chain.steps],
        },
    }
    return json.dumps(payload)


@dataclass
class LLMTipGenerator:
    """
    Tips from a hosted LLM.

    Clients are created lazily on first use. Every failure surfaces as
    TipError.
    """

    provider: Provider
    model: str
    api_key: str
    max_output_tokens: int = 400
    timeout: float = 30.0
    _client: Any = field(default=None, repr=False)

    def _get_client(self) -> Any:
        if self._client is None:
            if self.provider == Provider.OPENAI:
                self._client = openai.OpenAI(api_key=self.api_key, timeout=self.timeout)
            else:
                self._client = anthropic.Anthropic(api_key=self.api_key, timeout=self.timeout)
        return self._client

    def generate(self, metrics: "PromptChainMetrics", chain: "PromptChain") -> str:
        request = build_tips_request(metrics, chain)
        try:
            if self.provider == Provider.OPENAI:
                text = self._openai_call(request)
            else:
                text = self._anthropic_call(request)
        except (openai.OpenAIError, anthropic.AnthropicError) as e:
            raise TipError(f"{self.provider.value} API error: {e}") from e
        except Exception as e:
            raise TipError(f"Tip generation failed: {e}") from e

        return text.strip() or NO_TIPS_TEXT

    def _openai_call(self, request: str) -> str:
        response = self._get_client().responses.create(
            model=self.model,
            instructions=TIPS_SYSTEM_PROMPT,
            input=request,
            max_output_tokens=self.max_output_tokens,
        )
        return response.output_text or ""

    def _anthropic_call(self, request: str) -> str:
        response = self._get_client().messages.create(
            model=self.model,
            max_tokens=self.max_output_tokens,
            system=TIPS_SYSTEM_PROMPT,
            messages=[{"role": "user", "content": request}],
        )
        content = ""
        for block in response.content:
            if block.type == "text":
                content += block.text
        return content


def create_tip_generator(config: "TipsConfig") -> LLMTipGenerator | None:
    """
    Build an LLM tip generator if tips are enabled and a credential exists.

    Returns:
        LLMTipGenerator, or None when the capability is unavailable
    """
    if not config.enabled:
        return None
    api_key = config.api_key()
    if not api_key:
        return None
    return LLMTipGenerator(
        provider=Provider(config.provider),
        model=config.resolved_model(),
        api_key=api_key,
        max_output_tokens=config.max_output_tokens,
        timeout=config.timeout_seconds,
    )


@dataclass
class TipsResult:
    text: str
    source: str  # "llm" | "builtin"
    error: str | None = None


def generate_tips(
    metrics: "PromptChainMetrics",
    chain: "PromptChain",
    generator: TipGenerator | None = None,
    fallback: TipGenerator | None = None,
) -> TipsResult:
    """
    Generate tips, preferring the LLM generator.

    Args:
        metrics: Metrics of the chain
        chain: The chain itself
        generator: Optional LLM generator (None = built-in only)
        fallback: Local generator (default: BuiltinTipGenerator)

    Returns:
        TipsResult; error is set when the LLM generator failed
    """
    fallback = fallback or BuiltinTipGenerator()
    if generator is not None:
        try:
            return TipsResult(text=generator.generate(metrics, chain), source="llm")
        except Exception as e:
            logger.warning(f"AI tips unavailable: {e}")
            return TipsResult(
                text=fallback.generate(metrics, chain),
                source="builtin",
                error=str(e),
            )

    return TipsResult(text=fallback.generate(metrics, chain), source="builtin")


__all__ = [
    "TipError",
    "Provider",
    "TipGenerator",
    "BuiltinTipGenerator",
    "LLMTipGenerator",
    "TipsResult",
    "build_tips_request",
    "create_tip_generator",
    "generate_tips",
]
