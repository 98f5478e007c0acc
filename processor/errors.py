"""Exceptions raised by the ingestion and scrape-merge pipeline."""


class PipelineError(Exception):
    """Base class for pipeline errors."""


class NetworkError(PipelineError):
    """Outbound fetch failed or timed out."""


class DecodeError(PipelineError):
    """Response is not in the expected wrapped-JSON format."""


class ParseError(PipelineError):
    """A single cell value could not be parsed."""


class ScrapeError(PipelineError):
    """Scraped page yielded no events or a malformed event element."""
