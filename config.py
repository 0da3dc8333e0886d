# config.py
"""Application configuration for the document QA service"""
from pydantic_settings import BaseSettings
from utils.common import get_log_file_path


class Settings(BaseSettings):
    """Application configuration"""

    # Logger configuration
    LOGGER_NAME: str = "docqa"
    LOG_FILE_PATH: str = get_log_file_path()
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./documents.db"

    # Vector store (stored chunk embeddings)
    VECTOR_DB_PATH: str = "./vector_db"
    VECTOR_COLLECTION_NAME: str = "document_chunks"
    STORED_MATCH_THRESHOLD: float = 0.5

    # Embedding provider: "sentence_transformers" or "openai"
    EMBEDDING_PROVIDER: str = "sentence_transformers"
    EMBEDDING_MODEL_NAME: str = "paraphrase-multilingual-mpnet-base-v2"
    OPENAI_EMBEDDING_MODEL: str = "text-embedding-3-small"
    EMBEDDING_BATCH_SIZE: int = 20
    EMBEDDING_BATCH_DELAY_MS: int = 200

    # Generation provider: "openai", "ollama" or empty (demo mode)
    LLM_PROVIDER: str = "openai"
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL_NAME: str = "gpt-4"
    LLM_MODEL_NAME: str = "llama3.1:8b"
    LLM_BASE_URL: str = "http://localhost:11434"
    ANSWER_TEMPERATURE: float = 0.3
    STRUCTURED_TEMPERATURE: float = 0.2
    ANSWER_MAX_TOKENS: int = 500

    # Document processing
    CHUNK_SIZE: int = 1000
    CHUNK_OVERLAP: int = 200
    CHUNK_BREAK_LOOKAHEAD: int = 100
    MAX_FILE_SIZE: int = 50 * 1024 * 1024

    # Retrieval
    TOP_K: int = 5
    CITED_SOURCES: int = 3
    KEYWORD_SCORE_MIN: float = 0.5
    KEYWORD_SCORE_MAX: float = 0.95
    KEYWORD_SCORE_DIVISOR: float = 5.0

    # Inline documents (request-supplied content)
    INLINE_CACHE_MAX_ENTRIES: int = 500
    INLINE_CACHE_TTL_SECONDS: int = 900

    # API settings
    REQUEST_TIMEOUT: int = 60
    QUESTION_MAX_LENGTH: int = 2000

    # App metadata
    APP_TITLE: str = "Document QA Service"
    APP_VERSION: str = "1.0.0"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
