"""
Classify a free-text query into a target catalog and a short keyword phrase.

The model is asked for a single JSON object. The reply must be exactly that
object (optionally wrapped in a markdown code fence) and must carry both a
source and keywords; anything else is a classification failure, reported as a
``RouteDecision`` with both fields ``None``.
"""
import json
import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from .config import AppSettings
from .errors import RouterError
from .llm import ChatClient
from .schemas import RouteDecision


logger = logging.getLogger("uvicorn.error")

ROUTER_PROMPT = """
You are an intelligent API routing assistant. Your task is to analyze a user's query to determine the correct data source and to extract concise, effective search keywords.

RULES FOR CHOOSING A SOURCE:
- If the query is about machine learning, AI, models, NLP, vision, audio, or explicitly mentions "HuggingFace", the source is "HuggingFace".
- If the query explicitly mentions "Kaggle", the source is "Kaggle".
- For general government, city, public data, or civic topics (e.g., "new york", "census", "covid data", "crime rates"), the source is "CKAN".

RULES FOR EXTRACTING KEYWORDS:
- Extract ONLY the core subject of the query.
- Be concise. Use 2-4 words maximum.
- DO NOT include filler words like "datasets", "find", "show me", or the name of the source (e.g., "kaggle").

User Query: "{query}"

Your response MUST be ONLY a single, minified JSON object with two keys: "source" and "keywords".

Example 1: for "kaggle data on climate change" -> {{"source":"Kaggle","keywords":"climate change"}}
Example 2: for "new york covid data" -> {{"source":"CKAN","keywords":"new york covid"}}
Example 3: for "machine learning datasets for text classification" -> {{"source":"HuggingFace","keywords":"text classification"}}
Example 4: for "Show me audio datasets on HuggingFace" -> {{"source":"HuggingFace","keywords":"audio"}}
"""


def build_router_prompt(query: str) -> str:
    return ROUTER_PROMPT.format(query=query)


def _strip_code_fence(text: str) -> str:
    cleaned = text.strip()
    if not cleaned.startswith("```"):
        return cleaned
    lines = cleaned.splitlines()
    if len(lines) < 2 or not lines[-1].strip().startswith("```"):
        return cleaned
    return "\n".join(lines[1:-1]).strip()


def parse_route_decision(text: Optional[str]) -> RouteDecision:
    if not text:
        return RouteDecision.failed()
    try:
        payload: Any = json.loads(_strip_code_fence(text))
    except json.JSONDecodeError:
        logger.warning("Router reply is not JSON: %r", text[:200])
        return RouteDecision.failed()
    if not isinstance(payload, dict):
        logger.warning("Router reply is not a JSON object: %r", text[:200])
        return RouteDecision.failed()
    if not all(isinstance(payload.get(key), str) for key in ("source", "keywords")):
        logger.warning("Router reply has missing or non-string fields: %r", payload)
        return RouteDecision.failed()
    try:
        decision = RouteDecision.model_validate(payload)
    except ValidationError as exc:
        logger.warning("Router reply failed validation: %s", exc)
        return RouteDecision.failed()
    if not decision.is_complete():
        logger.warning("Router reply has blank fields: %r", payload)
        return RouteDecision.failed()
    return decision


async def route_query(client: ChatClient, settings: AppSettings, query: str) -> RouteDecision:
    prompt = build_router_prompt(query)
    try:
        text = await client.complete_text(
            model=settings.router_model,
            messages=[{"role": "user", "content": prompt}],
            response_format={"type": "json_object"},
        )
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("Error communicating with the router model: %s", exc)
        raise RouterError("Failed to parse query with AI.") from exc
    return parse_route_decision(text)
