import json
import math
import threading
from typing import Any, Dict, Iterable

from pydantic import BaseModel

CHARS_PER_TOKEN = 4


class TokenUsage(BaseModel):
    in_tokens: int = 0
    out_tokens: int = 0


def estimate_tokens(text: str) -> int:
    """Rough token count: four characters per token, rounded up."""
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def estimate_processing_usage(information: str, input_prompt: str, context_prompt: str, block_contents: Iterable[str]) -> TokenUsage:
    in_tokens = estimate_tokens(information + input_prompt + context_prompt)
    out_tokens = estimate_tokens(''.join(block_contents))
    return TokenUsage(in_tokens=in_tokens, out_tokens=out_tokens)


def estimate_question_usage(block_with_context: Dict[str, Any], output_prompt: str, context_prompt: str, question: str, answer: str) -> TokenUsage:
    in_tokens = estimate_tokens(json.dumps(block_with_context, default=str) + output_prompt + context_prompt)
    out_tokens = estimate_tokens(question + answer)
    return TokenUsage(in_tokens=in_tokens, out_tokens=out_tokens)


class UsageTracker:
    """Running token estimates kept by the caller, not by the core."""

    def __init__(self):
        self._lock = threading.Lock()
        self._in = 0
        self._out = 0

    def add(self, usage: TokenUsage) -> TokenUsage:
        with self._lock:
            self._in += usage.in_tokens
            self._out += usage.out_tokens
            return TokenUsage(in_tokens=self._in, out_tokens=self._out)

    def snapshot(self) -> TokenUsage:
        with self._lock:
            return TokenUsage(in_tokens=self._in, out_tokens=self._out)

    def reset(self):
        with self._lock:
            self._in = 0
            self._out = 0
