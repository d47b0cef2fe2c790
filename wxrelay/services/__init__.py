"""External collaborators: search backend and content readers."""

from wxrelay.services.file_reader import FileReaderService
from wxrelay.services.search import SearchService
from wxrelay.services.url_reader import URLReaderService

__all__ = ["SearchService", "URLReaderService", "FileReaderService"]
