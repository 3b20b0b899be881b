"""
Pydantic schemas for the Jira search endpoint
"""

from typing import Any, Dict, List
from pydantic import BaseModel, ConfigDict, Field, field_validator

SEARCH_FIELDS = (
    "summary,description,status,priority,assignee,reporter,"
    "created,updated,labels,issuetype,project,comment"
)


class JiraSearchPage(BaseModel):
    """
    One page of /rest/api/2/search.

    Issues stay raw dicts; only the transformer looks inside them.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    start_at: int = Field(0, alias="startAt", ge=0)
    max_results: int = Field(0, alias="maxResults", ge=0)
    total: int = Field(0, ge=0)
    issues: List[Dict[str, Any]] = Field(default_factory=list)

    @field_validator("issues", mode="before")
    @classmethod
    def default_issues(cls, v):
        if v is None:
            return []
        return v

    @property
    def is_empty(self) -> bool:
        return len(self.issues) == 0
