from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # OpenRouter
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    default_model: str = "google/gemini-2.5-flash"
    openrouter_model: str = ""
    planner_model: str = ""  # optional override for analysis and planning calls

    # Search provider
    search_provider: str = "auto"  # auto | brave | tavily | serpapi | mock
    brave_api_key: str = ""
    tavily_api_key: str = ""
    serpapi_api_key: str = ""
    search_fallback_to_mock: bool = True
    search_max_results: int = 10
    search_timeout_seconds: float = 30.0

    # Pipeline
    analysis_timeout_seconds: float = 15.0
    planner_mode: str = "llm"  # llm | heuristic
    planner_max_tasks: int = 5
    multihop_strict_dependencies: bool = False
    follow_up_suggestions_enabled: bool = True
    heuristics_path: str = ""  # empty uses the bundled heuristics.json

    # App
    cors_origins: str = "http://localhost:5173,http://localhost:3000"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_to_file: bool = False
    log_dir: str = "logs"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()
