from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="ARCHHIVE_", extra="ignore"
    )

    output_dir: str = "."
    # "all" logs verbosely with a visible browser, "screenshot" also skips archiving and saving
    debug: str | None = None

    # "auto" archives, "none" skips, anything else is a pre-defined snapshot URL
    ao_url: str = "auto"
    at_url: str = "auto"
    # Custom v.gd alias for the archive.org link, "none" disables shortening
    shorturl: str | None = None
    renew: str = "auto"

    save_page_retry_interval: float = 1.0
    crawl_poll_retries: int = 15
    crawl_poll_interval: float = 1.0
    crawl_poll_timeout_ms: int = 20000
    short_retries: int = 10
    short_retry_interval: float = 0.1
    rearchive_timeout_ms: int = 10000
    navigation_timeout_ms: int = 60000

    # Screenshot
    width: str = "laptop"
    viewport_height: int = 1080
    screenshot: str = "fullpage"
    screenshot_quality: int = 90
    image_load_timeout_ms: int = 15000
    noscript: bool = False
    print_media: bool = False
    referrer: str | None = None
    stylesheet: str | None = None
    stylesheets_dir: str = "./stylesheets"

    viewport_presets: dict[str, int] = Field(default_factory=lambda: {
        "mini": 492,
        "mobile": 576,
        "tablet": 768,
        "notebook": 1200,
        "laptop": 1400,
        "desktop": 1920,
    })
    referrer_presets: dict[str, str] = Field(default_factory=lambda: {
        "g": "https://google.com",
        "ddg": "https://duckduckgo.com",
    })
    # Characters that are not allowed in file names, swapped for look-alikes
    title_replacements: dict[str, str] = Field(default_factory=lambda: {
        '"': "”",
        "-": "‐",
        "|": "∣",
        "*": "＊",
        "/": "／",
        ">": "＞",
        "<": "＜",
        ":": "∶",
        "\\": "∖",
        "?": "？",
    })

    @property
    def history_file(self) -> str:
        return f"{self.output_dir.rstrip('/')}/.archhive_history"


settings = Settings()
