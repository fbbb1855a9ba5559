import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from dotenv import load_dotenv

CONFIG_PATH = Path("config.json")
ENV_OVERRIDE_KEY = "EXPLORER_ENV_OVERRIDES_CONFIG"
ENV_OVERRIDE_TRUE = {"1", "true", "yes", "on"}

DEFAULT_ROUTER_MODEL = "google/gemini-flash-1.5"


class AppSettings(BaseModel):
    # Hosted model used by the query router
    openrouter_api_key: Optional[str] = None
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    router_model: str = DEFAULT_ROUTER_MODEL
    llm_timeout_s: float = 30.0

    # Catalogs
    kaggle_cli_path: str = "kaggle"
    kaggle_timeout_s: float = 60.0
    ckan_base_url: str = "https://catalog.data.gov"
    ckan_rows: int = 9
    hf_base_url: str = "https://huggingface.co"
    hf_limit: int = 15
    http_timeout_s: float = 20.0

    # Server
    host: str = "0.0.0.0"
    port: int = 3001
    log_level: str = "info"
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    def to_safe_dict(self) -> dict:
        data = self.model_dump()
        if data.get("openrouter_api_key"):
            data["openrouter_api_key"] = "********"
        return data

    model_config = {"protected_namespaces": ()}


def _load_from_env() -> dict:
    load_dotenv()
    env_map = {
        "openrouter_api_key": os.getenv("OPENROUTER_API_KEY"),
        "openrouter_base_url": os.getenv("OPENROUTER_BASE_URL"),
        "router_model": os.getenv("ROUTER_MODEL"),
        "llm_timeout_s": os.getenv("LLM_TIMEOUT_S"),
        "kaggle_cli_path": os.getenv("KAGGLE_CLI_PATH"),
        "kaggle_timeout_s": os.getenv("KAGGLE_TIMEOUT_S"),
        "ckan_base_url": os.getenv("CKAN_BASE_URL"),
        "ckan_rows": os.getenv("CKAN_ROWS"),
        "hf_base_url": os.getenv("HF_BASE_URL"),
        "hf_limit": os.getenv("HF_LIMIT"),
        "http_timeout_s": os.getenv("HTTP_TIMEOUT_S"),
        "host": os.getenv("HOST"),
        "port": os.getenv("PORT"),
        "log_level": os.getenv("LOG_LEVEL"),
        "cors_origins": os.getenv("CORS_ORIGINS"),
    }
    cleaned = {k: v for k, v in env_map.items() if v not in (None, "")}
    for key in ("ckan_rows", "hf_limit", "port"):
        if key in cleaned:
            cleaned[key] = int(cleaned[key])
    for key in ("llm_timeout_s", "kaggle_timeout_s", "http_timeout_s"):
        if key in cleaned:
            cleaned[key] = float(cleaned[key])
    if "cors_origins" in cleaned:
        cleaned["cors_origins"] = [o.strip() for o in cleaned["cors_origins"].split(",") if o.strip()]
    return cleaned


def _env_overrides_config() -> bool:
    return str(os.getenv(ENV_OVERRIDE_KEY, "")).strip().lower() in ENV_OVERRIDE_TRUE


def load_settings(config_path: Optional[Path] = None) -> AppSettings:
    env_data = _load_from_env()
    path = config_path or CONFIG_PATH
    file_data: Dict[str, Any] = {}
    if path.exists():
        try:
            file_data = json.loads(path.read_text())
        except Exception:
            file_data = {}
    # Config wins by default; allow env overrides only when explicitly enabled.
    if _env_overrides_config():
        merged = {**file_data, **env_data}
    else:
        merged = {**env_data, **file_data}
    # Secrets normally live only in the environment.
    if not merged.get("openrouter_api_key") and env_data.get("openrouter_api_key"):
        merged["openrouter_api_key"] = env_data["openrouter_api_key"]
    return AppSettings(**merged)
