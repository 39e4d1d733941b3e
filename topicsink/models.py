from pydantic import BaseModel, ConfigDict, Field
from typing import Annotated, Any, Dict, Literal, Union
from bson import ObjectId
from bson.int64 import Int64

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


class InboundMessage(BaseModel):
    topic: str = Field(..., min_length=1, description="Collection routing key")
    payload: str = ""


class TextValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    value: str


class FloatValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["float"] = "float"
    value: float


class IntegerValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["integer"] = "integer"
    value: int = Field(..., ge=INT32_MIN, le=INT32_MAX)


TypedValue = Annotated[
    Union[TextValue, FloatValue, IntegerValue],
    Field(discriminator="kind"),
]


class StoredDocument(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: ObjectId = Field(default_factory=ObjectId)
    value: TypedValue
    timestamp: int

    def to_bson(self) -> Dict[str, Any]:
        """
        Build the document handed to ``insert_one``.

        The value keeps its Python type so the BSON encoder writes a
        string, double or int32; the timestamp is forced to int64.
        """
        return {
            "_id": self.id,
            "value": self.value.value,
            "timestamp": Int64(self.timestamp),
        }


class PersistResult(BaseModel):
    ok: bool
    topic: str
    document_id: str | None = None
    error: str | None = None
