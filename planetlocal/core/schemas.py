from typing import List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# =========================
# REQUEST
# =========================
class QueryRequest(BaseModel):
    query: str = Field(min_length=1)


# =========================
# RESULT
# =========================
class ColumnDescriptor(BaseModel):
    name: str
    type: str
    table: str = ""
    org_table: str = ""
    database: str = ""
    org_name: str = ""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


class Row(BaseModel):
    # base64 of every non-null value, concatenated without separators
    encoded_values: str = Field(alias="values")
    # byte length per column, -1 for NULL
    lengths: List[int]

    model_config = ConfigDict(populate_by_name=True)


class QueryResult(BaseModel):
    fields: List[ColumnDescriptor] = []
    rows: List[Row] = []
    insert_id: int = 0
    rows_affected: int = 0

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =========================
# STATUS
# =========================
class StatusResponse(BaseModel):
    status: str = "OK"
