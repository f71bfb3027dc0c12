from .issues import BookIssue, BookValidationError, IssueSeverity
from .loader import load_book, resolve_book
from .models import Book, BookItem, Chapter, html_path

__all__ = [
    "Book",
    "BookIssue",
    "BookItem",
    "BookValidationError",
    "Chapter",
    "IssueSeverity",
    "html_path",
    "load_book",
    "resolve_book",
]
