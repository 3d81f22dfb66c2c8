from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional

class PaginationMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current: int
    per_page: int = Field(alias="perPage")
    pages_count: int = Field(alias="pagesCount")
    count: int

class SearchParams(BaseModel):
    filters: Dict[str, Any] = {}
    sort: str = ""
    per_page: Optional[int] = Field(default=None, ge=1)
    page: int = Field(default=1, ge=1)
    skip_pagination: bool = False
    limit: Optional[int] = None

class OptionRow(BaseModel):
    label: Any
    value: Any

class SearchResponse(BaseModel):
    status: str = "success"
    data: List[Any] = []
    meta: Dict[str, Any] = {}
