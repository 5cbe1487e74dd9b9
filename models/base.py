from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class CamelModel(BaseModel):
    """
    Base for every DTO that crosses the HTTP boundary.

    Database rows and Python code use snake_case; JSON clients use camelCase.
    This is the only place the translation happens: fields are declared in
    snake_case, serialized with `model_dump(by_alias=True)` and accepted in
    either spelling.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_client(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
