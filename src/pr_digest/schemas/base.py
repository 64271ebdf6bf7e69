"""Base schema class for stored records."""

from pydantic import BaseModel, ConfigDict


class SchemaBase(BaseModel):
    """Base class for stored-record schemas.

    Instances can be built straight from ORM rows with ``model_validate``.
    """

    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
    )
