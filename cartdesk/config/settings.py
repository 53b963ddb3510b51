from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Shopify store the dashboard follows up on, e.g. "my-shop.myshopify.com"
    shopify_shop: str = ""
    shopify_access_token: str = ""
    shopify_api_version: str = "2025-04"
    shopify_timeout_seconds: float = 30.0
    shopify_page_limit: int = 250  # Shopify caps checkouts.json at 250 per page

    database_url: str = "sqlite:///./cart_desk.db"
    log_level: str = "INFO"
    request_log_body_limit: int = 4000

    # Sync never looks further back than this, even on an empty store
    sync_lookback_days: int = 3

    # Cart board
    board_page_size: int = 10
    recent_carts_limit: int = 15

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()
