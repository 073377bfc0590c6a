from __future__ import annotations

import typing as t
from collections import defaultdict

from gradebook.model import Module


class ModuleCatalog(t.Protocol):
    """Source of the modules that make up a course, in display order."""

    def get_modules(self, course_id: str) -> t.Sequence[Module]: ...


class StaticModuleCatalog(object):
    """In-memory catalog, for tools and tests."""

    def __init__(self, modules: t.Iterable[Module] = ()):
        self._modules: dict[str, list[Module]] = defaultdict(list)
        for module in modules:
            self.add(module)

    def add(self, module: Module) -> None:
        self._modules[module.course_id].append(module)

    def get_modules(self, course_id: str) -> tuple[Module, ...]:
        return tuple(self._modules.get(course_id, ()))

    @classmethod
    def from_dict(cls, data: t.Mapping[str, t.Sequence[t.Mapping[str, t.Any]]]) -> StaticModuleCatalog:
        """Build from ``{course_id: [module, ...]}``, as found in a modules YAML file."""
        return cls(
            Module.model_validate({**m, "course_id": course_id}) for course_id, ms in data.items() for m in ms
        )
