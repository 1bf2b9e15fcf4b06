from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # OpenRouter (any OpenAI-compatible endpoint works, e.g. Ollama's /v1)
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    default_model: str = "openai/gpt-4o-mini"
    openrouter_model: str = ""
    llm_max_tokens: int = 1024
    llm_temperature: float = 0.7
    summary_language: str = "English"  # "Original Language" keeps the article's language

    # Search provider
    search_provider: str = "duckduckgo"  # duckduckgo | brave | tavily
    brave_api_key: str = ""
    tavily_api_key: str = ""
    search_fallback_to_tavily: bool = False
    search_max_results: int = 5

    # External call ceilings (seconds)
    scrape_timeout_seconds: float = 10.0
    search_timeout_seconds: float = 8.0
    generation_timeout_seconds: float = 60.0
    feed_timeout_seconds: float = 10.0

    # Page extraction
    scrape_min_content_chars: int = 200
    extractor_max_page_chars: int = 120000
    scrape_user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    feed_user_agent: str = "NewsDeck/1.0 (RSS Reader Application)"

    # Article cache
    cache_dir: str = ".cache/newsdeck"
    cache_ttl_days: int = 7

    # Related articles
    related_max_results: int = 5
    related_min_score: float = 0.15

    # Chat
    chat_context_chars: int = 3000

    # App
    cors_origins: str = "http://localhost:3000"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_dir: str = "logs"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]


settings = Settings()
