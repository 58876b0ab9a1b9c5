"""
Error Taxonomy

Caller-visible failures (InputError, PatternCatalogError,
AnalysisNotPermittedError) propagate. ExternalServiceError is raised
by the language-model layer and absorbed by the analyzer, which falls
back to local pattern scoring.
"""

from __future__ import annotations


class DraftClearError(Exception):
    """Base for all DraftClear errors."""


class InputError(DraftClearError):
    """Text missing, empty, or outside the caller's length policy."""


class PatternCatalogError(DraftClearError):
    """A malformed detection rule. Raised at catalog load time only."""


class ExternalServiceError(DraftClearError):
    """The language-model collaborator timed out, failed, or returned junk."""


class AnalysisNotPermittedError(DraftClearError):
    """The usage gate refused this analysis."""
