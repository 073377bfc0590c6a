from __future__ import annotations

__all__ = [
    "Closing",
    "Container",
    "NotReady",
    "Provider",
    "Provide",
    "inject",
    "providers",
    "containers",
    "required",
    "wire_packages",
]

import sys
import typing as t

import dependency_injector.containers as containers
import dependency_injector.providers as providers
from dependency_injector.containers import Container
from dependency_injector.providers import Provider
from dependency_injector.wiring import Closing, inject, Provide, required


class NotReady(object):
    _instance: t.ClassVar[NotReady | None] = None

    def __new__(cls) -> NotReady:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "<NotReady>"


def wire_packages(ct: Container, packages: t.Sequence[str]) -> None:
    """Wire every already-imported module that lives under one of `packages`."""
    imported = [
        mod
        for name, mod in list(sys.modules.items())
        if mod is not None and any(name == pkg or name.startswith(f"{pkg}.") for pkg in packages)
    ]
    if imported:
        ct.wire(modules=imported)
