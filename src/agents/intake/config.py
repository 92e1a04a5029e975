import math

from pydantic_settings import SettingsConfigDict

from common.settings import BaseAppSettings


class Settings(BaseAppSettings):
    TOPIC_WA_IN: str = "serve.vm.whatsapp.in"
    # completed-record events; empty disables publishing
    TOPIC_INTAKE_EVENTS: str = ""
    GROUP_ID: str = "clinic-intake-agent"
    AGENT_NAME: str = "intake"
    MCP_BASE: str = "http://localhost:9000"
    MCP_TIMEOUT_SECONDS: float = 10.0
    PORT: int = 8001

    # Persistence (Google Sheets)
    GOOGLE_SHEET_ID: str = ""
    STUDENTS_SHEET_NAME: str = "Sheet3"
    PATIENTS_SHEET_NAME: str = "Sheet4"
    GOOGLE_SERVICE_ACCOUNT_JSON: str = ""
    GOOGLE_SERVICE_ACCOUNT_JSON_PATH: str = ""
    SHEETS_TIMEOUT_SECONDS: float = 15.0

    # Outbound links
    WEBINAR_LINK: str = "https://drruchitamehta.exlyapp.com/checkout/707b6532-7bbe-40fd-bd76-104c6dc459c4"
    PATIENT_LINK: str = "https://drruchitamehta.exlyapp.com/checkout/f92410b4-99bf-4da7-8d97-965cff79f1ea"
    DIABETES_WEBINAR_LINK: str = "https://drruchitamehta.exlyapp.com/checkout/8392be04-0a17-4c40-92a4-9dfc6f418140"
    TYPE1_LINK: str = "https://drruchitamehta.exlyapp.com/checkout/d3b56137-7abc-4ecf-b8b6-5af21a31f3b7"
    OTHER_LINK: str = ""  # falls back to TYPE1_LINK

    # Follow-ups and pacing
    FOLLOWUP_HOURS_1: float = 24
    FOLLOWUP_HOURS_2: float = 48
    FOLLOWUP_HOURS_3: float = 72
    REPLY_DELAY_MIN_SECONDS: float = 0
    REPLY_DELAY_MAX_SECONDS: float = 60

    # AI fallback (Mistral)
    MISTRAL_API_KEY: str = ""
    MISTRAL_MODEL: str = "mistral-small-latest"
    MISTRAL_BASE: str = "https://api.mistral.ai"
    MISTRAL_TIMEOUT_SECONDS: float = 15.0

    model_config = SettingsConfigDict(env_file=".env",
                                      env_file_encoding="utf-8",
                                      extra="ignore")

    @property
    def other_link(self) -> str:
        return self.OTHER_LINK or self.TYPE1_LINK

    def followup_delays_seconds(self) -> list[float]:
        """Configured follow-up delays in seconds; non-finite or non-positive hours are dropped."""
        hours = [self.FOLLOWUP_HOURS_1, self.FOLLOWUP_HOURS_2, self.FOLLOWUP_HOURS_3]
        return [h * 3600 for h in hours if math.isfinite(h) and h > 0]

    def reply_delay_bounds(self) -> tuple[float, float]:
        return normalize_delay_range(self.REPLY_DELAY_MIN_SECONDS, self.REPLY_DELAY_MAX_SECONDS)


def normalize_delay_range(lo: float, hi: float, default_lo: float = 0, default_hi: float = 60) -> tuple[float, float]:
    """
    Normalize a (min, max) reply delay range in seconds.

    Non-finite values take their defaults, both bounds are floored at zero,
    and the pair is swapped when min > max.

    Examples:
        (0, 60)   → (0, 60)
        (30, 5)   → (5, 30)
        (-4, 10)  → (0, 10)
    """
    lo = lo if math.isfinite(lo) else default_lo
    hi = hi if math.isfinite(hi) else default_hi
    return max(0.0, min(lo, hi)), max(0.0, max(lo, hi))


settings = Settings()
