from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_BASE_URL = "https://api.visionati.com"
FETCH_ENDPOINT = "/api/fetch"


class VisionConfig(BaseModel):
    """
    Settings for one orchestration run.

    The core reads no environment variables; callers build this object from
    whatever source they use (see the CLI for the environment-backed path).
    """

    model_config = ConfigDict(frozen=True)

    api_key: str = Field(description="Visionati API key")
    backend: str = Field(default="gemini", description="model backend used for descriptions")
    language: str = Field(default="English", description="output language")
    prompt: str = Field(
        default="",
        description="optional, custom prompt overriding the field role",
    )
    batch_size: int = Field(default=10, ge=1, description="maximum images per request")
    poll_interval_seconds: float = Field(
        default=2.0, ge=0, description="delay between two polls of the same job"
    )
    max_poll_attempts: int = Field(
        default=30, ge=1, description="polls allowed per job before it times out"
    )
    base_url: str = Field(default=DEFAULT_BASE_URL, description="vision service base URL")
    request_timeout_seconds: float = Field(default=60.0, gt=0)

    @field_validator("api_key")
    @classmethod
    def api_key_not_blank(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("API key is required")
        return stripped

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        stripped = value.strip().rstrip("/")
        if not stripped:
            raise ValueError("base URL cannot be empty")
        return stripped

    @property
    def custom_prompt(self) -> str | None:
        stripped = self.prompt.strip()
        return stripped or None

    @property
    def fetch_url(self) -> str:
        return f"{self.base_url}{FETCH_ENDPOINT}"
