"""
Configuration Management for Formsmith

Loads configuration from ~/.formsmith/config.json and environment variables.
"""

import os
import json
from pathlib import Path
from dataclasses import dataclass, field
from typing import List

# Default config paths
CONFIG_DIR = Path.home() / ".formsmith"
CONFIG_PATH = CONFIG_DIR / "config.json"
LOGS_DIR = CONFIG_DIR / "logs"
STORE_PATH = CONFIG_DIR / "forms.json"


@dataclass
class EmbeddingConfig:
    """Vectorizer configuration"""
    mode: str = "hash"  # deterministic hashing; "femb" for fastembed
    model: str = "sentence-transformers/all-MiniLM-L6-v2"
    dimension: int = 128


@dataclass
class RetrieverConfig:
    """Relevance retrieval policy"""
    topk: int = 5
    similarity_threshold: float = 0.1
    candidate_limit: int = 1000
    include_schema: bool = True


@dataclass
class LLMConfig:
    """LLM provider configuration for form generation"""
    provider: str = "google"
    google_api_key: str = ""
    google_model: str = "gemini-2.5-flash"
    google_fallback_models: List[str] = field(
        default_factory=lambda: ["gemini-1.5-flash", "gemini-pro"]
    )
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    max_tokens: int = 4096
    timeout: float = 60.0


@dataclass
class StoreConfig:
    """Record store configuration"""
    backend: str = "json"  # "json" or "memory"
    path: str = str(STORE_PATH)


@dataclass
class FormsmithConfig:
    """Main Formsmith configuration"""
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    retriever: RetrieverConfig = field(default_factory=RetrieverConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    _env_sourced_keys: set = field(default_factory=set, repr=False)


def _parse_embedding_config(data: dict) -> EmbeddingConfig:
    """Parse embedding section from config dict"""
    embedding_data = data.get("embedding", {})
    return EmbeddingConfig(
        mode=embedding_data.get("mode", "hash"),
        model=embedding_data.get("model", "sentence-transformers/all-MiniLM-L6-v2"),
        dimension=embedding_data.get("dimension", 128),
    )


def _parse_retriever_config(data: dict) -> RetrieverConfig:
    """Parse retriever section from config dict"""
    retriever_data = data.get("retriever", {})
    return RetrieverConfig(
        topk=retriever_data.get("topk", 5),
        similarity_threshold=retriever_data.get("similarity_threshold", 0.1),
        candidate_limit=retriever_data.get("candidate_limit", 1000),
        include_schema=retriever_data.get("include_schema", True),
    )


def _parse_llm_config(data: dict) -> LLMConfig:
    """Parse llm section from config dict"""
    llm_data = data.get("llm", {})
    defaults = LLMConfig()
    return LLMConfig(
        provider=llm_data.get("provider", defaults.provider),
        google_api_key=llm_data.get("google_api_key", ""),
        google_model=llm_data.get("google_model", defaults.google_model),
        google_fallback_models=list(
            llm_data.get("google_fallback_models", defaults.google_fallback_models)
        ),
        anthropic_api_key=llm_data.get("anthropic_api_key", ""),
        anthropic_model=llm_data.get("anthropic_model", defaults.anthropic_model),
        openai_api_key=llm_data.get("openai_api_key", ""),
        openai_model=llm_data.get("openai_model", defaults.openai_model),
        max_tokens=llm_data.get("max_tokens", defaults.max_tokens),
        timeout=llm_data.get("timeout", defaults.timeout),
    )


def _parse_store_config(data: dict) -> StoreConfig:
    """Parse store section from config dict"""
    store_data = data.get("store", {})
    return StoreConfig(
        backend=store_data.get("backend", "json"),
        path=store_data.get("path", str(STORE_PATH)),
    )


def load_config() -> FormsmithConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file (~/.formsmith/config.json)
    3. Default values
    """
    config = FormsmithConfig()

    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.embedding = _parse_embedding_config(data)
            config.retriever = _parse_retriever_config(data)
            config.llm = _parse_llm_config(data)
            config.store = _parse_store_config(data)
        except (json.JSONDecodeError, IOError) as e:
            print(f"[Config] Warning: Failed to load config file: {e}")

    if os.getenv("EMBEDDING_MODE"):
        config.embedding.mode = os.getenv("EMBEDDING_MODE")
    if os.getenv("EMBEDDING_MODEL"):
        config.embedding.model = os.getenv("EMBEDDING_MODEL")

    if os.getenv("FORMSMITH_TOPK"):
        config.retriever.topk = int(os.getenv("FORMSMITH_TOPK"))
    if os.getenv("FORMSMITH_SIMILARITY_THRESHOLD"):
        config.retriever.similarity_threshold = float(os.getenv("FORMSMITH_SIMILARITY_THRESHOLD"))
    if os.getenv("FORMSMITH_CANDIDATE_LIMIT"):
        config.retriever.candidate_limit = int(os.getenv("FORMSMITH_CANDIDATE_LIMIT"))

    if os.getenv("FORMSMITH_STORE_BACKEND"):
        config.store.backend = os.getenv("FORMSMITH_STORE_BACKEND")
    if os.getenv("FORMSMITH_STORE_PATH"):
        config.store.path = os.getenv("FORMSMITH_STORE_PATH")

    # LLM env var overrides (track env-sourced keys so they are not persisted)
    _env_llm_map = {
        "GOOGLE_API_KEY": "google_api_key",
        "GEMINI_API_KEY": "google_api_key",
        "GOOGLE_MODEL": "google_model",
        "ANTHROPIC_API_KEY": "anthropic_api_key",
        "ANTHROPIC_MODEL": "anthropic_model",
        "OPENAI_API_KEY": "openai_api_key",
        "OPENAI_MODEL": "openai_model",
        "FORMSMITH_LLM_PROVIDER": "provider",
    }
    for env_var, attr in _env_llm_map.items():
        val = os.getenv(env_var)
        if val:
            setattr(config.llm, attr, val)
            config._env_sourced_keys.add(attr)

    return config


def save_config(config: FormsmithConfig) -> None:
    """Save configuration to file.

    API key fields that were sourced from environment variables are written
    as empty strings so that secrets are not persisted to disk.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    env_sourced = getattr(config, "_env_sourced_keys", set())

    llm_section = {
        "provider": config.llm.provider,
        "google_api_key": config.llm.google_api_key,
        "google_model": config.llm.google_model,
        "google_fallback_models": list(config.llm.google_fallback_models),
        "anthropic_api_key": config.llm.anthropic_api_key,
        "anthropic_model": config.llm.anthropic_model,
        "openai_api_key": config.llm.openai_api_key,
        "openai_model": config.llm.openai_model,
        "max_tokens": config.llm.max_tokens,
        "timeout": config.llm.timeout,
    }
    for key in ("google_api_key", "anthropic_api_key", "openai_api_key"):
        if key in env_sourced:
            llm_section[key] = ""

    data = {
        "embedding": {
            "mode": config.embedding.mode,
            "model": config.embedding.model,
            "dimension": config.embedding.dimension,
        },
        "retriever": {
            "topk": config.retriever.topk,
            "similarity_threshold": config.retriever.similarity_threshold,
            "candidate_limit": config.retriever.candidate_limit,
            "include_schema": config.retriever.include_schema,
        },
        "llm": llm_section,
        "store": {
            "backend": config.store.backend,
            "path": config.store.path,
        },
    }

    with open(CONFIG_PATH, "w") as f:
        json.dump(data, f, indent=2)

    # Set secure permissions
    CONFIG_PATH.chmod(0o600)


def ensure_directories() -> None:
    """Ensure required directories exist"""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    LOGS_DIR.mkdir(parents=True, exist_ok=True)
