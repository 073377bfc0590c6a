import datetime

import pydantic as p


class BaseModel(p.BaseModel):
    """Common base for gradebook models.

    Dumps go by alias, so configuration sections come out with the key names
    ``logging.config.dictConfig`` expects (``class``, ``()``). Construction
    accepts either the alias or the field name.
    """

    model_config = p.ConfigDict(
        serialize_by_alias=True,
        validate_by_alias=True,
        validate_by_name=True,
        validate_assignment=True,
    )


class WithMtime(BaseModel):
    update_time: datetime.datetime
