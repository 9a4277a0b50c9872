from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class OperationModel(BaseModel):
    kind: Literal["remove_spaces", "remove_special", "split_by", "custom_expression"] = "remove_spaces"
    delimiter: Optional[str] = None
    source: Optional[str] = None


class SelectColumnRequest(BaseModel):
    column: str


class TransformRequest(BaseModel):
    columns: List[str] = Field(default_factory=list)
    rows: List[Dict[str, Optional[str]]] = Field(default_factory=list)
    column: str
    operation: OperationModel = Field(default_factory=OperationModel)
    preview: bool = False


class TableResponse(BaseModel):
    source_name: Optional[str] = None
    columns: List[str]
    row_count: int
    offset: int = 0
    rows: List[Dict[str, str]]


class EditorStateResponse(BaseModel):
    state: Literal["idle", "editing", "previewing"]
    source_name: Optional[str] = None
    row_count: int
    columns: List[str]
    column: Optional[str] = None
    draft: Optional[Dict[str, str]] = None
    preview: List[Dict[str, str]] = Field(default_factory=list)


class OperationInfo(BaseModel):
    kind: str
    label: str
    example: str


class OperationListResponse(BaseModel):
    operations: List[OperationInfo]
