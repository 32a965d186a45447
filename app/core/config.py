from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Business
    business_name: str = "Ray's Laundromat"
    contact_phone: str = "0729022408"

    # Store
    store_db_url: str = "sqlite:///./rayslaund_store.db"

    # LLM (no key means every generator call takes the fallback path)
    groq_api_key: Optional[str] = None
    groq_model: str = "openai/gpt-oss-20b"
    llm_temperature: float = 0.7
    llm_max_tokens: int = 500
    history_window: int = 10

    # Chat arbitration
    drop_stale_automated_replies: bool = True

    # Dashboards
    completed_orders_page_size: int = 5
    discount_amount: int = 200

    # /events keep-alive when nothing changes
    sse_heartbeat_seconds: float = 15.0

    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
