from __future__ import annotations

import datetime
import typing as t

import pydantic as p
import pydantic_core.core_schema as core_schema
import shortuuid

_alphabet = frozenset(shortuuid.get_alphabet())


class StringID(str):
    """A string id that validates on construction and serializes as a plain string."""

    @classmethod
    def __get_pydantic_core_schema__(cls, src: t.Any, handler: p.GetCoreSchemaHandler) -> core_schema.CoreSchema:
        from_str_schema = core_schema.no_info_after_validator_function(cls, core_schema.str_schema(min_length=1))
        return core_schema.json_or_python_schema(
            json_schema=from_str_schema,
            python_schema=core_schema.union_schema([core_schema.is_instance_schema(cls), from_str_schema]),
            serialization=core_schema.plain_serializer_function_ser_schema(str.__str__),
        )

    @classmethod
    def __get_pydantic_json_schema__(cls, src: t.Any, handler: p.GetJsonSchemaHandler) -> p.json_schema.JsonSchemaValue:
        return {"type": "string"}

    def __hash__(self) -> int:
        return str.__hash__(self)

    def __str__(self) -> str:
        return str.__str__(self)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {str.__str__(self)}>"


class GradeID(StringID):
    """Composite grade key: ``{learner_id}_{module_id}_{discriminator}``.

    The discriminator is the creation time in epoch milliseconds followed by
    a short random suffix, so two grades entered for the same pair within the
    same millisecond still get distinct keys. Keys are never reused.
    """

    separator: t.ClassVar[str] = "_"
    suffix_length: t.ClassVar[int] = 6

    @classmethod
    def generate(cls, learner_id: str, module_id: str, at: datetime.datetime) -> GradeID:
        millis = int(at.timestamp() * 1000)
        suffix = shortuuid.ShortUUID().random(length=cls.suffix_length)
        return cls(cls.separator.join((learner_id, module_id, f"{millis:013d}{suffix}")))


class AuditLogID(StringID):
    """``audit$<shortuuid>``. Only the 22 character key is stored.

    With no arguments a fresh id is minted; `key` wraps a stored key without
    validation, and a full id string is checked before it is accepted.
    """

    prefix: t.ClassVar[str] = "audit"
    separator: t.ClassVar[str] = "$"
    key_length: t.ClassVar[int] = 22

    def __new__(cls, s: str | None = None, /, key: str | None = None) -> t.Self:
        if s is None:
            return super().__new__(cls, f"{cls.prefix}{cls.separator}{key or shortuuid.uuid()}")

        prefix, sep, k = s.partition(cls.separator)
        if prefix != cls.prefix or not sep:
            raise ValueError(f"invalid {cls.__name__}: must begin with {cls.prefix}{cls.separator}")
        if len(k) != cls.key_length or not _alphabet.issuperset(k):
            raise ValueError(f"invalid {cls.__name__}: key must be {cls.key_length} shortuuid characters")
        return super().__new__(cls, s)

    @property
    def key(self) -> str:
        return self.partition(self.separator)[2]
