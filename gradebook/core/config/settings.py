import pydantic as p
from pydantic_settings import BaseSettings as PydanticBaseSettings
from pydantic_settings import PydanticBaseSettingsSource

from gradebook.model import BaseModel, DeploymentEnvironment

from .grading import AuditSettings, GradingSettings
from .logging import LoggingSettings
from .source import OverrideSettingsSource, YAMLCascadingSettingsSource
from .storage import StorageSettings


class Settings(PydanticBaseSettings, BaseModel):  # pyright: ignore [reportIncompatibleVariableOverride]
    """Everything the container needs to boot, minus credentials (see `Secrets`).

    `root`, `env` and `override` locate the configuration; the remaining
    fields are sections, one YAML file each. Sections without a file fall back
    to their defaults, except `logging` and `storage`, which must be present.
    """

    root: p.FileUrl
    env: DeploymentEnvironment
    override: tuple[str, ...] = ()

    logging: LoggingSettings
    storage: StorageSettings
    grading: GradingSettings = p.Field(default_factory=GradingSettings)
    audit: AuditSettings = p.Field(default_factory=AuditSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[PydanticBaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # earlier sources win; environment variables are reserved for Secrets
        return init_settings, OverrideSettingsSource(settings_cls), YAMLCascadingSettingsSource(settings_cls)
