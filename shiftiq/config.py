from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    API_KEY: str = "dev-secret"
    AUTH_ENABLED: bool = False
    ALLOWED_ORIGINS: str = "*"
    LOG_LEVEL: str = "INFO"

    # Full URL wins over the DB_* parts (e.g. sqlite+aiosqlite:///./shiftiq.db)
    DATABASE_URL: Optional[str] = None
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "shiftiq"
    DB_USER: str = "postgres"
    DB_PASSWORD: str = "postgres"
    DB_CREATE_ALL: bool = True

    # Chat provider selection: "openai" or "perplexity". Embeddings always use OpenAI.
    LLM_PROVIDER: str = "openai"
    LLM_TIMEOUT_SECONDS: float = 30.0

    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4"
    OPENAI_EMBED_MODEL: str = "text-embedding-ada-002"
    EMBED_DIM: int = 1536

    PERPLEXITY_API_KEY: str = ""
    PERPLEXITY_MODEL: str = "sonar"

    # Ingestion
    CHUNK_SIZE: int = 1000
    CHUNK_OVERLAP: int = 200
    CHUNK_MIN_LENGTH: int = 50
    EMBED_CONCURRENCY: int = 4

    # Retrieval and answering
    SIMILARITY_THRESHOLD: float = 0.7
    MATCH_COUNT: int = 3
    ANSWER_TEMPERATURE: float = 0.3
    ANSWER_MAX_TOKENS: int = 500
    CLASSIFY_TEMPERATURE: float = 0.1
    CLASSIFY_MAX_TOKENS: int = 50
    ALLOWED_TOPICS: str = "restaurant_operations,hospitality,pos_systems,craft_beer,cocktails"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    @property
    def allowed_topics(self) -> List[str]:
        return [t.strip().lower() for t in self.ALLOWED_TOPICS.split(",") if t.strip()]

    @property
    def allowed_origins(self) -> List[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",")]

settings = Settings()
