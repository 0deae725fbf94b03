"""Base model for documents persisted in the remote store"""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class DocumentModel(BaseModel):
    """
    Stored documents use camelCase keys; Python code uses snake_case.

    Both spellings are accepted on input. Dump with to_document() to get
    the stored shape.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
