from typing import Any, Dict, List, Optional

import httpx


CHAT_ROLES = ("system", "user", "assistant")


def clean_messages(messages: Any) -> List[Dict[str, str]]:
    """Keep only role/content pairs the completions API accepts."""
    if not isinstance(messages, list):
        return []
    return [
        {"role": msg["role"], "content": msg["content"]}
        for msg in messages
        if isinstance(msg, dict)
        and msg.get("role") in CHAT_ROLES
        and isinstance(msg.get("content"), str)
        and msg["content"].strip()
    ]


class ChatClient:
    """Client for the hosted OpenAI-compatible endpoint (OpenRouter) used for routing."""

    def __init__(self, base_url: str, api_key: Optional[str], timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.client = httpx.AsyncClient(timeout=timeout)

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def chat_completion(
        self,
        model: str,
        messages: List[Dict[str, Any]],
        temperature: float = 0.2,
        response_format: Optional[dict] = None,
    ) -> Dict[str, Any]:
        if not model:
            raise ValueError("model is required")
        body: Dict[str, Any] = {
            "model": model,
            "messages": clean_messages(messages),
            "temperature": temperature,
            "stream": False,
        }
        if not body["messages"]:
            raise ValueError("messages must include at least one non-empty entry")
        if response_format:
            body["response_format"] = response_format
        resp = await self.client.post(f"{self.base_url}/chat/completions", json=body, headers=self._headers())
        if resp.is_error:
            # Surface the provider's error body; OpenRouter puts the reason there.
            raise httpx.HTTPStatusError(
                f"chat completion failed ({resp.status_code}): {resp.text}",
                request=resp.request,
                response=resp,
            )
        return resp.json()

    async def complete_text(
        self,
        model: str,
        messages: List[Dict[str, Any]],
        temperature: float = 0.2,
        response_format: Optional[dict] = None,
    ) -> str:
        data = await self.chat_completion(model, messages, temperature=temperature, response_format=response_format)
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ValueError("chat completion returned no choices") from exc
        if not isinstance(content, str):
            raise ValueError("chat completion returned no text content")
        return content

    async def close(self) -> None:
        if not self.client.is_closed:
            await self.client.aclose()
