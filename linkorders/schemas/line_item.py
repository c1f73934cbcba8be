"""
라인아이템 metadata(JSONB) 스키마.

DB에는 camelCase 키로 저장되며, 알 수 없는 키는 그대로 보존합니다.
"""
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

InclusionStatus = Literal["included", "excluded", "saved_for_later"]
SelectionPool = Literal["primary", "alternative"]


class LineItemMetadata(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    inclusion_status: Optional[InclusionStatus] = Field(default=None, alias="inclusionStatus")
    inclusion_order: Optional[int] = Field(default=None, alias="inclusionOrder")
    exclusion_reason: Optional[str] = Field(default=None, alias="exclusionReason")
    selection_pool: Optional[SelectionPool] = Field(default=None, alias="selectionPool")
    pool_rank: Optional[int] = Field(default=None, alias="poolRank")

    @classmethod
    def from_raw(cls, raw: dict | None) -> "LineItemMetadata":
        return cls.model_validate(raw if isinstance(raw, dict) else {})

    def to_raw(self) -> dict:
        return self.model_dump(by_alias=True)
