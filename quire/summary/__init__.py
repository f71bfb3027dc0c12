"""Manifest (SUMMARY.md) parsing."""

from .models import PartTitle, SectionNumber, Separator, Summary, SummaryItem, SummaryLink
from .parser import SummaryError, load_summary, parse_summary

__all__ = [
    "PartTitle",
    "SectionNumber",
    "Separator",
    "Summary",
    "SummaryError",
    "SummaryItem",
    "SummaryLink",
    "load_summary",
    "parse_summary",
]
