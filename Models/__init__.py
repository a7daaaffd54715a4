"""
Models — Data types shared by detection modules and reporters.
"""
from Models.Issue import CWE_URL_BASE, FIELD_ALIASES, Element, Issue, IssueField, Severity, encode

__all__ = [
    "CWE_URL_BASE",
    "FIELD_ALIASES",
    "Element",
    "Issue",
    "IssueField",
    "Severity",
    "encode",
]
