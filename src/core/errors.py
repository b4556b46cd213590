"""
Error taxonomy for a single panel query.

Every error here is caught by the orchestrator and attached to the result
of the query that raised it; none of them aborts sibling queries.
"""
from __future__ import annotations


class PanelQueryError(Exception):
    """Base class for failures scoped to one panel query."""


class TemplateError(PanelQueryError):
    """The raw query template could not be turned into SQL."""


class MissingFieldError(TemplateError):
    """A required field (query text, time column) is absent."""


class UnsupportedPlaceholderError(TemplateError):
    """A `$word` token is left over after all known substitutions."""


class UnsupportedFormatError(PanelQueryError):
    """The requested output format is not `time_series`."""


class TransportError(PanelQueryError):
    """The HTTP round trip to the database failed."""


class MalformedResponseError(PanelQueryError):
    """The response body is not the expected tabular JSON."""


class MalformedValueError(PanelQueryError):
    """A value expected to be numeric (the time column) did not parse."""
