from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # OpenRouter
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    default_model: str = "google/gemini-2.0-flash-001"
    openrouter_model: str = ""
    planner_model: str = ""  # optional override for query planning only
    completion_max_tokens: int = 8192
    completion_temperature: float = 0.7

    # Search provider
    search_provider: str = "llm"  # llm | tavily | brave
    tavily_api_key: str = ""
    brave_api_key: str = ""
    search_fallback_to_tavily: bool = False
    search_max_results_per_query: int = 10
    search_max_parallel_requests: int = 5

    # Per-call timeouts
    search_timeout_seconds: float = 30.0
    completion_timeout_seconds: float = 180.0
    history_timeout_seconds: float = 10.0

    # Market context injected into every prompt
    research_market_region: str = "South Africa"
    research_market_locations: str = "Johannesburg,Cape Town,Durban,Pretoria"
    research_market_currency: str = "South African Rand (ZAR/R)"

    # History store
    supabase_url: str = ""
    supabase_anon_key: str = ""
    history_table: str = "market_research_history"

    # App
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_dir: str = "logs"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def market_location_list(self) -> list[str]:
        return [loc.strip() for loc in self.research_market_locations.split(",") if loc.strip()]

    @property
    def history_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)


settings = Settings()
