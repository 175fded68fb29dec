from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    anthropic_api_key: str = ""
    menu_model: str = "claude-sonnet-4-5-20250929"

    # Anthropic API timeout settings (seconds)
    anthropic_timeout: int = 120  # Whole-call ceiling for one menu analysis
    anthropic_connect_timeout: int = 10

    # Menu analysis request shape
    analysis_max_tokens: int = 4096
    analysis_temperature: float = 0.1

    # Image encoding
    jpeg_quality: int = 70
    max_image_width: int = 1920

    # Local key-value store
    database_url: str = "sqlite:///./knoweat.db"

    log_level: str = "INFO"

    class Config:
        env_file = ".env"


settings = Settings()
