"""
Reporter — Console output and JSON report generation for issues.
"""
from Reporter.Reporter import Reporter

__all__ = ["Reporter"]
