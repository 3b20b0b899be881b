"""
Transform raw Jira issues into LLM training documents
"""

import html
import re
from typing import Any, Dict, List, Optional
from schemas.training import (
    InstructionTask,
    IssueComment,
    IssueContent,
    IssueMetadata,
    QnAPair,
    TrainingDocument,
    TrainingTasks,
)
from core.exceptions import TransformationError
import logging

logger = logging.getLogger(__name__)

TAG_PATTERN = re.compile(r"<[^>]*>")

SUMMARIZATION_INSTRUCTION = "Summarize the following Jira issue in 2-3 sentences."
CLASSIFICATION_INSTRUCTION = "Classify the type and priority of this issue."
SUMMARY_EXCERPT_LENGTH = 200


def strip_html_tags(value: Optional[str]) -> str:
    """Drop markup, decode entities and trim; None becomes an empty string"""
    if not value:
        return ""
    text = TAG_PATTERN.sub("", str(value))
    text = html.unescape(text).replace("\xa0", " ")
    return text.strip()


class IssueTransformer:
    """
    Map one Jira issue onto a TrainingDocument.

    Handles:
    - HTML stripping of descriptions and comments
    - Metadata extraction with optional nested fields
    - Summarization, classification and QnA task generation

    transform() never raises: a malformed issue is logged and yields None.
    """

    def transform(self, issue: Dict[str, Any]) -> Optional[TrainingDocument]:
        try:
            return self.build_document(issue)
        except Exception as e:
            logger.warning(
                f"Error processing issue {self._issue_key(issue)}: "
                f"{type(e).__name__}: {e}"
            )
            return None

    def build_document(self, issue: Dict[str, Any]) -> TrainingDocument:
        """Strict variant of transform(); raises TransformationError"""
        fields = issue.get("fields") if isinstance(issue, dict) else None
        if not isinstance(fields, dict):
            raise TransformationError(
                "Issue has no fields object",
                context={"issue": self._issue_key(issue)}
            )

        description = strip_html_tags(fields.get("description"))
        comments = self._comments(fields)
        full_context = f"{description}\n\n" + "\n".join(c.text for c in comments)

        metadata = IssueMetadata(
            key=issue["key"],
            title=fields["summary"],
            status=fields["status"]["name"],
            priority=self._display(fields.get("priority"), "name"),
            assignee=self._display(fields.get("assignee"), "displayName"),
            reporter=self._display(fields.get("reporter"), "displayName"),
            created=fields.get("created"),
            updated=fields.get("updated"),
            labels=fields.get("labels") or [],
            issue_type=fields["issuetype"]["name"],
        )

        return TrainingDocument(
            id=str(issue["id"]),
            project=fields["project"]["key"],
            metadata=metadata,
            content=IssueContent(description=description, comments=comments),
            tasks=self.generate_tasks(metadata, description, full_context),
        )

    def generate_tasks(
        self,
        metadata: IssueMetadata,
        description: str,
        full_context: str
    ) -> TrainingTasks:
        excerpt = description[:SUMMARY_EXCERPT_LENGTH]
        return TrainingTasks(
            summarization=InstructionTask(
                instruction=SUMMARIZATION_INSTRUCTION,
                input=full_context,
                output=f"{metadata.title}. Status: {metadata.status}. {excerpt}...",
            ),
            classification=InstructionTask(
                instruction=CLASSIFICATION_INSTRUCTION,
                input=full_context,
                output=(
                    f"Type: {metadata.issue_type}, "
                    f"Priority: {metadata.priority or 'Not specified'}"
                ),
            ),
            qna=[
                QnAPair(
                    question=f"What is the status of {metadata.key}?",
                    answer=metadata.status,
                ),
                QnAPair(
                    question=f"What is {metadata.key} about?",
                    answer=metadata.title,
                ),
                QnAPair(
                    question=f"Who reported {metadata.key}?",
                    answer=metadata.reporter or "Unknown",
                ),
            ],
        )

    def _comments(self, fields: Dict[str, Any]) -> List[IssueComment]:
        container = fields.get("comment") or {}
        return [
            IssueComment(
                author=self._display(c.get("author"), "displayName") or "Unknown",
                text=strip_html_tags(c.get("body")),
                timestamp=c.get("created"),
            )
            for c in container.get("comments") or []
        ]

    @staticmethod
    def _display(value: Any, attribute: str) -> Optional[str]:
        if isinstance(value, dict):
            return value.get(attribute)
        return None

    @staticmethod
    def _issue_key(issue: Any) -> str:
        if isinstance(issue, dict):
            return str(issue.get("key") or issue.get("id") or "<unknown>")
        return "<unknown>"
