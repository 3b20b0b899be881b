"""
Pydantic schemas for the LLM training documents written to the JSONL output
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List


class IssueMetadata(BaseModel):
    """Descriptive fields of the issue"""

    model_config = ConfigDict(populate_by_name=True)

    key: str
    title: str
    status: str
    priority: Optional[str] = None
    assignee: Optional[str] = None
    reporter: Optional[str] = None
    created: Optional[str] = None
    updated: Optional[str] = None
    labels: List[str] = Field(default_factory=list)
    issue_type: str = Field(..., alias="issueType")


class IssueComment(BaseModel):
    author: str
    text: str
    timestamp: Optional[str] = None


class IssueContent(BaseModel):
    description: str = ""
    comments: List[IssueComment] = Field(default_factory=list)


class InstructionTask(BaseModel):
    """Instruction-tuning triple"""
    instruction: str
    input: str
    output: str


class QnAPair(BaseModel):
    question: str
    answer: str


class TrainingTasks(BaseModel):
    summarization: InstructionTask
    classification: InstructionTask
    qna: List[QnAPair] = Field(default_factory=list)


class TrainingDocument(BaseModel):
    """
    One line of a collection's output stream.

    Serialized with aliases so the field names match the published
    corpus format (e.g. metadata.issueType).
    """

    id: str
    project: str
    metadata: IssueMetadata
    content: IssueContent
    tasks: TrainingTasks

    def to_json_line(self) -> str:
        return self.model_dump_json(by_alias=True)
