"""Exception hierarchy for the analysis engine."""


class KnowledgeGapError(Exception):
    """Base class for engine errors."""


class ResponseParseError(KnowledgeGapError):
    """The completion oracle returned text that is not JSON."""

    def __init__(self, text: str) -> None:
        self.snippet = (text or "")[:200]
        super().__init__(f"Failed to parse JSON response: {self.snippet}")


class DuplicateDocumentError(KnowledgeGapError):
    """A document with the same content hash has already been ingested."""

    def __init__(self, existing_name: str) -> None:
        self.existing_name = existing_name
        super().__init__(f'Duplicate: "{existing_name}" has already been uploaded.')


class EmptyDocumentError(KnowledgeGapError):
    """No text could be extracted from a document."""


class UnsupportedDocumentError(KnowledgeGapError):
    """The document type cannot be ingested."""


class MissingAPIKeyError(KnowledgeGapError):
    """No credential is configured for the completion provider."""
