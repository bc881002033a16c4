"""
GidroAtlas Configuration Module
===============================

Centralized configuration management using environment variables.
Supports both .env files and system environment variables.

Every component receives its section of the settings in its constructor;
nothing reads the environment after startup.

Environment Variables:
    OLLAMA_BASE_URL: Ollama API base URL (default: http://localhost:11434)
    OLLAMA_CHAT_MODEL: Generation model (default: qwen3:4b)
    OLLAMA_EMBEDDING_MODEL: Embedding model (default: nomic-embed-text)
    OLLAMA_TIMEOUT_SECONDS: HTTP timeout (default: 120)
    OLLAMA_TEMPERATURE: Generation temperature (default: 0.5)
    OLLAMA_MAX_TOKENS: Max generated tokens (default: 1024)
    OLLAMA_NUM_CTX: Model context window (default: 8192)
    OLLAMA_EMBEDDING_DIMENSIONS: Vector size (default: 768)

    DATABASE_HOST: PostgreSQL host (default: localhost)
    DATABASE_PORT: PostgreSQL port (default: 5432)
    DATABASE_NAME: Database name (default: gidroatlas)
    DATABASE_USER: Database user (default: postgres)
    DATABASE_PASSWORD: Database password (default: empty)
    DATABASE_POOL_MIN: Minimum pool connections (default: 2)
    DATABASE_POOL_MAX: Maximum pool connections (default: 10)

    RAG_SEARCH_TOP_K: Default results for search (default: 10)
    RAG_CHAT_TOP_K: Results retrieved per chat question (default: 3)
    RAG_MIN_RELEVANCE: Inclusion floor for search results (default: 0.3)
    RAG_HIGH_RELEVANCE: Average relevance needed to inject context (default: 0.6)
    RAG_MAX_SNIPPET_LENGTH: Source snippet cap in characters (default: 500)

    INDEXING_CHUNK_SIZE: Characters per chunk (default: 1000)
    INDEXING_CHUNK_OVERLAP: Overlap between chunks (default: 200)
    INDEXING_AUTO_ON_STARTUP: Run the indexing supervisor with the API (default: true)
    INDEXING_STARTUP_DELAY: Seconds before the supervisor starts (default: 5)
    INDEXING_MAX_RETRIES: Availability polls before giving up (default: 30)
    INDEXING_RETRY_DELAY: Seconds between polls (default: 10)
    INDEXING_PDF_FOLDER: Folder scanned for PDFs at startup (default: docs/pdfs)
"""

import os
from dataclasses import dataclass, field
from typing import Optional
from pathlib import Path
from dotenv import load_dotenv


# Load environment variables from .env file if present
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)
else:
    load_dotenv()


def get_env(key: str, default: Optional[str] = None) -> Optional[str]:
    """
    Get environment variable with optional default.

    Args:
        key: Environment variable name
        default: Default value if not set

    Returns:
        Environment variable value or default
    """
    return os.getenv(key, default)


def get_env_int(key: str, default: int) -> int:
    """Get environment variable as integer."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable '{key}' must be an integer, got: {value}")


def get_env_float(key: str, default: float) -> float:
    """Get environment variable as float."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Environment variable '{key}' must be a float, got: {value}")


def get_env_bool(key: str, default: bool) -> bool:
    """Get environment variable as boolean."""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


@dataclass
class OllamaConfig:
    """Ollama model server configuration (embeddings + chat)."""

    base_url: str = field(default_factory=lambda: get_env("OLLAMA_BASE_URL", "http://localhost:11434"))
    chat_model: str = field(default_factory=lambda: get_env("OLLAMA_CHAT_MODEL", "qwen3:4b"))
    embedding_model: str = field(default_factory=lambda: get_env("OLLAMA_EMBEDDING_MODEL", "nomic-embed-text"))

    timeout_seconds: int = field(default_factory=lambda: get_env_int("OLLAMA_TIMEOUT_SECONDS", 120))

    # Lower temperature / fewer tokens = faster, more deterministic answers
    temperature: float = field(default_factory=lambda: get_env_float("OLLAMA_TEMPERATURE", 0.5))
    max_tokens: int = field(default_factory=lambda: get_env_int("OLLAMA_MAX_TOKENS", 1024))
    num_ctx: int = field(default_factory=lambda: get_env_int("OLLAMA_NUM_CTX", 8192))

    # nomic-embed-text produces 768-dim vectors; must match vector(768) columns
    embedding_dimensions: int = field(default_factory=lambda: get_env_int("OLLAMA_EMBEDDING_DIMENSIONS", 768))

    def __post_init__(self):
        """Validate configuration."""
        if not self.base_url:
            raise ValueError("OLLAMA_BASE_URL is required")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError("temperature must be between 0.0 and 2.0")
        if self.max_tokens <= 0:
            raise ValueError("max_tokens must be positive")
        if self.embedding_dimensions <= 0:
            raise ValueError("embedding_dimensions must be positive")


@dataclass
class DatabaseConfig:
    """PostgreSQL database configuration."""

    host: str = field(default_factory=lambda: get_env("DATABASE_HOST", "localhost"))
    port: int = field(default_factory=lambda: get_env_int("DATABASE_PORT", 5432))
    name: str = field(default_factory=lambda: get_env("DATABASE_NAME", "gidroatlas"))
    user: str = field(default_factory=lambda: get_env("DATABASE_USER", "postgres"))
    password: str = field(default_factory=lambda: get_env("DATABASE_PASSWORD", ""))

    # Connection pool settings
    pool_min_size: int = field(default_factory=lambda: get_env_int("DATABASE_POOL_MIN", 2))
    pool_max_size: int = field(default_factory=lambda: get_env_int("DATABASE_POOL_MAX", 10))

    connect_timeout: int = field(default_factory=lambda: get_env_int("DATABASE_CONNECT_TIMEOUT", 10))

    # SSL mode: disable, allow, prefer, require, verify-ca, verify-full
    ssl_mode: str = field(default_factory=lambda: get_env("DATABASE_SSL_MODE", "prefer"))

    @property
    def connection_dict(self) -> dict:
        """Connection parameters as dictionary for psycopg2."""
        return {
            "host": self.host,
            "port": self.port,
            "dbname": self.name,
            "user": self.user,
            "password": self.password,
            "sslmode": self.ssl_mode,
            "connect_timeout": self.connect_timeout,
        }

    def __post_init__(self):
        """Validate configuration."""
        if self.pool_min_size > self.pool_max_size:
            raise ValueError("pool_min_size cannot exceed pool_max_size")


@dataclass
class RagConfig:
    """Retrieval and relevance gating configuration."""

    search_top_k: int = field(default_factory=lambda: get_env_int("RAG_SEARCH_TOP_K", 10))
    # Fewer chunks per chat question = shorter prompt, faster generation
    chat_top_k: int = field(default_factory=lambda: get_env_int("RAG_CHAT_TOP_K", 3))

    min_relevance: float = field(default_factory=lambda: get_env_float("RAG_MIN_RELEVANCE", 0.3))
    high_relevance: float = field(default_factory=lambda: get_env_float("RAG_HIGH_RELEVANCE", 0.6))

    max_snippet_length: int = field(default_factory=lambda: get_env_int("RAG_MAX_SNIPPET_LENGTH", 500))

    def __post_init__(self):
        """Validate configuration."""
        if self.search_top_k <= 0 or self.chat_top_k <= 0:
            raise ValueError("top_k values must be positive")
        if not 0.0 <= self.min_relevance <= self.high_relevance <= 1.0:
            raise ValueError("expected 0 <= min_relevance <= high_relevance <= 1")
        if self.max_snippet_length <= 0:
            raise ValueError("max_snippet_length must be positive")


@dataclass
class IndexingConfig:
    """Document indexing and startup supervisor configuration."""

    chunk_size: int = field(default_factory=lambda: get_env_int("INDEXING_CHUNK_SIZE", 1000))
    chunk_overlap: int = field(default_factory=lambda: get_env_int("INDEXING_CHUNK_OVERLAP", 200))

    auto_index_on_startup: bool = field(default_factory=lambda: get_env_bool("INDEXING_AUTO_ON_STARTUP", True))
    startup_delay_seconds: float = field(default_factory=lambda: get_env_float("INDEXING_STARTUP_DELAY", 5.0))

    # 30 polls * 10s = wait up to 5 minutes for the model server
    max_retries: int = field(default_factory=lambda: get_env_int("INDEXING_MAX_RETRIES", 30))
    retry_delay_seconds: float = field(default_factory=lambda: get_env_float("INDEXING_RETRY_DELAY", 10.0))

    pdf_folder: str = field(default_factory=lambda: get_env("INDEXING_PDF_FOLDER", "docs/pdfs"))

    def __post_init__(self):
        """Validate configuration."""
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 <= self.chunk_overlap < self.chunk_size:
            raise ValueError("chunk_overlap must be in [0, chunk_size)")
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = field(default_factory=lambda: get_env("LOG_LEVEL", "INFO"))
    log_file: Optional[str] = field(default_factory=lambda: get_env("LOG_FILE"))

    # Structured logging
    json_logs: bool = field(default_factory=lambda: get_env_bool("LOG_JSON", False))


@dataclass
class Settings:
    """Main application settings container."""

    ollama: OllamaConfig = field(default_factory=OllamaConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    rag: RagConfig = field(default_factory=RagConfig)
    indexing: IndexingConfig = field(default_factory=IndexingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_settings() -> Settings:
    """
    Load and validate all application settings.

    Returns:
        Fully configured Settings instance

    Raises:
        ValueError: If required configuration is missing or invalid
    """
    return Settings()


# Global settings instance (lazy-loaded)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton pattern).

    Returns:
        Global Settings instance
    """
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
