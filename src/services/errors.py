"""Error taxonomy for document extraction and summarization.

Every error carries a human-readable ``message`` that is shown to the user
as-is once it reaches the session's error slot.
"""


class DocumentError(Exception):
    """Base class for all errors raised while handling a document."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ValidationError(DocumentError):
    """Upload rejected because of its type or size. Never reaches the network."""


class ReadError(DocumentError):
    """The uploaded document could not be read."""

    def __init__(self, message: str = "Document unreadable"):
        super().__init__(message)


class ExtractionError(DocumentError):
    """The inference endpoint failed while extracting text."""


class EmptyDocumentError(DocumentError):
    """Extraction succeeded but no text came back."""

    def __init__(self, message: str = "No text found in the document"):
        super().__init__(message)


class SummarizationError(DocumentError):
    """The inference endpoint failed while generating a summary."""


class MissingInputError(DocumentError):
    """Summarization was requested before any text was extracted."""

    def __init__(self, message: str = "Please extract text first"):
        super().__init__(message)


class OperationInProgressError(DocumentError):
    """The same operation is already running for this session."""


class SessionNotFoundError(DocumentError):
    """No session exists with the requested id."""


class OperationSupersededError(DocumentError):
    """A newer file was selected while the operation was running."""

    def __init__(self, message: str = "Cancelled because a new file was selected"):
        super().__init__(message)
