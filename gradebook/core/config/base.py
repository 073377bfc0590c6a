import pydantic as p

from gradebook.model import BaseModel


class SectionSettings(BaseModel):
    """A section of `Settings`, validated from its merged YAML documents.

    Sections never read the environment themselves; only `Settings` and
    `Secrets` have sources. Unknown keys are rejected so that a misspelled
    option fails at boot rather than being ignored.
    """

    model_config = p.ConfigDict(extra="forbid", frozen=True)
