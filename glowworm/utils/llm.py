import os
from functools import lru_cache

PROMPTS_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "prompts")


@lru_cache(maxsize=None)
def load_prompt(name: str) -> str:
    with open(os.path.join(PROMPTS_DIR, name), encoding="utf-8") as f:
        return f.read()


def strip_code_fence(raw_text: str) -> str:
    """Remove markdown code fences a model wraps around JSON."""
    text = raw_text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = [l for l in lines if not l.strip().startswith("```")]
        text = "\n".join(lines)
    return text


def build_api_kwargs(model: str, messages: list[dict], max_tokens: int = 500) -> dict:
    """Build OpenAI chat completion kwargs based on model type."""
    api_kwargs: dict = {"model": model, "messages": messages}

    if model.startswith("o"):
        # o-series reasoning models: no temperature, max_completion_tokens
        api_kwargs["max_completion_tokens"] = max_tokens * 4
    else:
        api_kwargs["max_tokens"] = max_tokens
        api_kwargs["temperature"] = 0.1

    return api_kwargs
