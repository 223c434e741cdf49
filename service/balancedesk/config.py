from dataclasses import dataclass
from pydantic_settings import BaseSettings
from functools import lru_cache


@dataclass(frozen=True)
class BotIdentity:
    """A Telegram bot token and the review chat it posts to."""
    name: str
    token: str
    chat_id: str


class Settings(BaseSettings):
    # Telegram bots (one token/chat pair per review desk)
    bot_order_token: str = ""
    bot_order_chat: str = ""

    bot_balance_token: str = ""
    bot_balance_chat: str = ""

    bot_admin_cmd_token: str = ""
    bot_admin_cmd_chat: str = ""

    bot_login_report_token: str = ""
    bot_login_report_chat: str = ""

    bot_help_token: str = ""
    bot_help_chat: str = ""

    bot_offers_token: str = ""
    bot_offers_chat: str = ""

    bot_notify_token: str = ""
    bot_notify_chat: str = ""

    telegram_api_base: str = "https://api.telegram.org"

    # Google Sheets ledger
    google_sa_key_json: str = ""  # Inline service-account JSON
    google_sa_cred_path: str = ""  # Or a path to it
    sheet_id: str = ""
    ledger_retry_seconds: int = 60

    # Local cache
    data_file: str = "data.json"

    # Polling
    poll_interval_seconds: float = 10.0
    poll_long_poll_seconds: int = 20

    # Outbound send timeouts
    send_timeout_seconds: float = 4.0
    alert_timeout_seconds: float = 3.0

    # Environment
    environment: str = "development"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    def bot(self, name: str) -> BotIdentity:
        return BotIdentity(
            name=name,
            token=getattr(self, f"bot_{name}_token"),
            chat_id=getattr(self, f"bot_{name}_chat"),
        )

    def polled_bots(self) -> list[BotIdentity]:
        """Bots to poll, in polling order. Admin commands go first."""
        names = ["admin_cmd", "order", "balance", "login_report", "help", "offers", "notify"]
        return [b for b in (self.bot(n) for n in names) if b.token]


@lru_cache()
def get_settings() -> Settings:
    return Settings()
