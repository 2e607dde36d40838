"""Settings resolution: TOML config file, environment variables and ``.env``."""

import os
from functools import lru_cache
from pathlib import Path

import tomlkit
import typer
from pydantic import BaseModel, ConfigDict, Field, SecretStr
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from gib.models import NonEmptyStr

CONFIG_PATH = Path.home() / ".config" / "gib" / "config.toml"
CONFIG_FILE_ENV = "GIB_CONFIG_FILE"


class PromptSettings(BaseModel):
    """Per-feature prompt tuning, the ``[prompts.<feature>]`` tables of the config file.

    Inline template text wins over a template path; with neither, the packaged
    default template is used.
    """

    model_config = ConfigDict(extra="forbid")

    temperature: float = Field(default=1.0, ge=0.0, le=2.0)
    system_message_template: str | None = None
    user_message_template: str | None = None
    system_message_template_path: Path | None = None
    user_message_template_path: Path | None = None


class GibSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="GIB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Git host
    githost: str = "github"
    bot_name: NonEmptyStr = "gib[bot]"  # login of the bot account, comments from it are ignored
    github_auth: str = "token"  # "token" | "gh-cli" | "app"
    github_token: SecretStr | None = None
    github_api_url: str = "https://api.github.com"
    # GitHub App (github_auth = "app")
    github_app_id: int | None = None
    github_installation_id: int | None = None
    github_private_key_path: Path | None = None

    # LLM
    llm: str = "openai"
    llm_api_base_url: str = "https://api.openai.com/v1"
    llm_model: str = "gpt-4o-mini"
    llm_api_key: SecretStr | None = None

    # Webhook server
    webhook_host: str = "127.0.0.1"
    webhook_port: int = 8080
    webhook_secret: SecretStr | None = None

    # Features: allow_list=False means `features` lists the disabled ones.
    allow_list: bool = False
    features: list[str] = []
    concurrent_features: bool = False
    prompts: dict[str, PromptSettings] = {}

    log_level: str = "INFO"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Config file values arrive as init kwargs; env and .env override them.
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    def prompt_settings(self, feature_name: str) -> PromptSettings:
        return self.prompts.get(feature_name) or PromptSettings()


@lru_cache(maxsize=4)
def _load_toml(path: Path) -> dict:
    """Load the config file as plain python data, empty if missing."""
    if not path.exists():
        return {}
    with path.open() as fp:
        return tomlkit.load(fp).unwrap()


def resolve_config_path(config_path: Path | None = None) -> Path:
    """Precedence: explicit path (--config), then GIB_CONFIG_FILE, then ~/.config/gib/config.toml."""
    if config_path:
        return config_path
    env_path = os.environ.get(CONFIG_FILE_ENV)
    if env_path:
        return Path(env_path).expanduser()
    return CONFIG_PATH


def load_settings(config_path: Path | None = None) -> GibSettings:
    """Resolve the config file and return GibSettings without checking credentials."""
    return GibSettings(**_load_toml(resolve_config_path(config_path)))


def get_settings(config_path: Path | None = None) -> GibSettings:
    """Resolve the config file and return fully populated, validated GibSettings."""
    path = resolve_config_path(config_path)
    settings = load_settings(path)

    if settings.githost == "github" and settings.github_auth == "token" and not settings.github_token:
        typer.echo(
            "Missing GitHub credentials. Set GIB_GITHUB_TOKEN or github_token in "
            f'{path}, or set github_auth = "gh-cli" to use the gh CLI.'
        )
        raise typer.Exit(1)
    if settings.githost == "github" and settings.github_auth == "app":
        missing = [
            name
            for name in ("github_app_id", "github_installation_id", "github_private_key_path")
            if getattr(settings, name) is None
        ]
        if missing:
            typer.echo(f"Missing GitHub App settings: {', '.join(missing)}. Set them in {path} or as GIB_* env vars.")
            raise typer.Exit(1)
    if settings.llm == "openai" and not settings.llm_api_key:
        typer.echo(f"Missing LLM credentials. Set GIB_LLM_API_KEY or llm_api_key in {path}.")
        raise typer.Exit(1)

    return settings
