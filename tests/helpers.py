import json

import httpx


def gemini_payload(text: str, prompt_tokens: int = 40, completion_tokens: int = 60) -> dict:
    return {
        "candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}],
        "usageMetadata": {
            "promptTokenCount": prompt_tokens,
            "candidatesTokenCount": completion_tokens,
        },
    }


def openai_payload(text: str, prompt_tokens: int = 30, completion_tokens: int = 50) -> dict:
    return {
        "choices": [{"index": 0, "message": {"role": "assistant", "content": text}}],
        "usage": {"prompt_tokens": prompt_tokens, "completion_tokens": completion_tokens},
    }


def request_json(request: httpx.Request) -> dict:
    return json.loads(request.content)
