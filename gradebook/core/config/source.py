"""Settings sources for the YAML configuration tree.

``config/<section>.yaml`` holds the defaults for a section; an environment may
adjust any of them in ``config/env.d/<env>/<section>.yaml``. Command line
``-o section.key=value`` overrides sit above both.

pydantic-settings gives earlier sources priority and deep-merges the rest
under them, so `Settings` lists `OverrideSettingsSource` ahead of
`YAMLCascadingSettingsSource`.
"""

import functools
import typing as t
from pathlib import Path

import pydantic as p
import yaml
from pydantic_settings import PydanticBaseSettingsSource, SettingsError

from gradebook.model import DeploymentEnvironment

# init arguments of `Settings` that locate the configuration rather than being configuration
BootFields = frozenset({"root", "env", "override"})


class BootState(t.TypedDict):
    root: p.AnyUrl
    env: DeploymentEnvironment
    override: tuple[str, ...]


def merge_documents(base: t.Mapping[str, t.Any], overlay: t.Mapping[str, t.Any]) -> dict[str, t.Any]:
    """Merge `overlay` into a copy of `base`, recursing where both sides hold a mapping.

    An explicit null in `overlay` replaces the base value, which is how an
    environment switches `storage.persistent` from sqlite to postgresql.
    """
    merged = dict(base)
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(value, t.Mapping) and isinstance(current, t.Mapping):
            merged[key] = merge_documents(current, value)
        else:
            merged[key] = value
    return merged


def parse_overrides(overrides: t.Iterable[str]) -> dict[str, t.Any]:
    """Turn ``a.b.c=value`` strings into a nested mapping; values are parsed as YAML."""
    parsed: dict[str, t.Any] = {}
    for override in overrides:
        path, sep, raw = override.partition("=")
        if not sep or not path.strip():
            raise SettingsError(f"override {override!r} is not of the form section.key=value")
        *parents, leaf = [part.strip() for part in path.split(".")]
        target = parsed
        for part in parents:
            target = target.setdefault(part, {})
            if not isinstance(target, dict):
                raise SettingsError(f"override {override!r} conflicts with an earlier override")
        target[leaf] = yaml.safe_load(raw)
    return parsed


class SectionSource(PydanticBaseSettingsSource):
    """A source that produces whole sections of `Settings` at once."""

    @property
    def boot_state(self) -> BootState:
        return t.cast(BootState, self.current_state)

    @property
    def sections(self) -> list[str]:
        return [name for name in self.settings_cls.model_fields if name not in BootFields]

    def get_field_value(self, field: p.fields.FieldInfo, field_name: str) -> tuple[t.Any, str, bool]:
        # sections are produced together in __call__
        return None, field_name, False


class OverrideSettingsSource(SectionSource):
    def __call__(self) -> dict[str, t.Any]:
        overrides = parse_overrides(self.boot_state.get("override", ()))
        unknown = set(overrides) - set(self.sections)
        if unknown:
            raise SettingsError(f"cannot override unknown configuration sections {sorted(unknown)}")
        return overrides


class YAMLCascadingSettingsSource(SectionSource):
    @functools.cached_property
    def directories(self) -> list[Path]:
        root = self.boot_state["root"]
        if root.scheme != "file" or root.path is None:
            raise SettingsError(f"configuration root {root} is not a local directory")
        base = Path(root.path)
        return [base / d for d in self.boot_state["env"].config_dirs]

    def load(self, section: str) -> dict[str, t.Any] | None:
        documents: list[dict[str, t.Any]] = []
        for directory in self.directories:
            path = directory / f"{section}.yaml"
            if not path.is_file():
                continue
            try:
                document = yaml.safe_load(path.read_text(encoding="utf8")) or {}
            except yaml.YAMLError as e:
                raise SettingsError(f"could not parse {path}") from e
            if not isinstance(document, dict):
                raise SettingsError(f"{path} must contain a mapping")
            documents.append(t.cast(dict[str, t.Any], document))
        if not documents:
            return None
        return functools.reduce(merge_documents, documents, {})

    def __call__(self) -> dict[str, t.Any]:
        loaded = {section: self.load(section) for section in self.sections}
        return {section: data for section, data in loaded.items() if data is not None}
