"""Contract for exporting generated content to an external document store."""

from typing import Protocol

from pydantic import BaseModel


class ExportedDocument(BaseModel):
    """Reference to a document created by an exporter."""

    document_id: str
    url: str


class DocumentExporter(Protocol):
    """Creates an external document from generated HTML.

    Export is best-effort: callers log and discard any failure.
    """

    async def export(self, title: str, html: str, folder_id: str) -> ExportedDocument:
        """Create a document titled ``title`` inside ``folder_id``.

        Raises:
            ExportError: If the document could not be created
        """
        ...
