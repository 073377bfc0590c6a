from __future__ import annotations

import pydantic as p
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from gradebook.model import BaseModel, DeploymentEnvironment


class PostgresqlSecrets(BaseModel):  # nested, populated by Secrets from the environment
    username: p.Secret[str] | None = None
    password: p.Secret[str] | None = None


class Secrets(BaseSettings, BaseModel):  # pyright: ignore [reportIncompatibleVariableOverride]
    """Credentials, read from ``GRADEBOOK_``-prefixed environment variables.

    Nested keys use a double underscore, e.g. ``GRADEBOOK_POSTGRESQL__PASSWORD``.
    """

    model_config = SettingsConfigDict(env_prefix="GRADEBOOK_", env_nested_delimiter="__")

    root: p.AnyUrl
    env: DeploymentEnvironment

    postgresql: PostgresqlSecrets = p.Field(default_factory=PostgresqlSecrets)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, env_settings
