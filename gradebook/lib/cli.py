from __future__ import annotations

import enum
import math
import pathlib
import typing as t

import click
import pydantic as p
from click import *  # noqa: F401, F403 # pyright: ignore [reportWildcardImportFromLibrary]

from gradebook.model import GradeID

# This module is a thin wrapper around Click, which is why we import `click.*`
# into our namespace, alongside the parameter types the gradebook commands share.

E = t.TypeVar("E", bound=enum.Enum)


class EnumType(click.ParamType, t.Generic[E]):
    """An enum member, given by value (``GRADE_CHANGE``) or by name (``GradeChange``)."""

    def __init__(self, enum: type[E]):
        self.enum = enum
        self.name = enum.__name__

    def convert(self, value: str | E | None, param: click.Parameter | None, ctx: click.Context | None) -> E | None:
        if value is None or isinstance(value, self.enum):
            return value

        for member in self.enum:
            if value in (member.value, member.name) or value.lower() == str(member.value).lower():
                return member
        choices = ", ".join(str(m.value) for m in self.enum)
        self.fail(f"{value!r} is not a valid {self.name}; choose from {choices}", param, ctx)

    def __repr__(self) -> str:
        return self.name


class ScoreType(click.ParamType):
    """A raw score; a trailing ``%`` is allowed. Rounding and clamping happen in the ledger."""

    name = "SCORE"

    def convert(self, value: str | float, param: click.Parameter | None, ctx: click.Context | None) -> float:
        if isinstance(value, (int, float)):
            return float(value)
        try:
            score = float(value.strip().removesuffix("%"))
        except ValueError:
            self.fail(f"{value!r} is not a number", param, ctx)
        if not math.isfinite(score):
            self.fail(f"{value!r} is not a finite number", param, ctx)
        return score


class GradeIDType(click.ParamType):
    """A grade id as printed by ``grade enter``: ``{learner}_{module}_{discriminator}``."""

    name = "GRADE_ID"

    def convert(self, value: str, param: click.Parameter | None, ctx: click.Context | None) -> GradeID:
        if isinstance(value, GradeID):
            return value
        if value.count(GradeID.separator) < 2:
            self.fail(f"{value!r} does not look like a grade id", param, ctx)
        return GradeID(value)


class ConfigRootType(click.ParamType):
    """A directory of YAML configuration, given as a path or a ``file://`` URL."""

    name = "DIRECTORY"

    def convert(
        self, value: str | pathlib.Path | p.FileUrl, param: click.Parameter | None, ctx: click.Context | None
    ) -> p.FileUrl:
        if isinstance(value, p.FileUrl):
            return value

        raw = str(value)
        if "://" in raw:
            if not raw.startswith("file://"):
                self.fail(f"{raw}: only file:// URLs are supported", param, ctx)
            raw = raw.removeprefix("file://")

        path = pathlib.Path(raw).absolute()
        if not path.is_dir():
            self.fail(f"{path}: not a directory", param, ctx)
        return p.FileUrl(f"file://{path}")
