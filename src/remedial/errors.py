"""Error hierarchy for the remedial scheduling engine.

Domain failures (validation, conflicts, partial batches) are never raised;
they come back as result objects. Exceptions are reserved for I/O at the
edges: the HTTP client and the import file reader. The split between
transient and permanent failures lets tenacity decide what to retry.

Example usage with tenacity:
    @retry(retry=retry_if_exception_type(TransientError), stop=stop_after_attempt(3))
    def fetch_profile(user_id: str):
        ...
"""


class RemedialError(Exception):
    """Base exception for all remedial engine errors."""

    pass


class RemedialAPIError(RemedialError):
    """Failure talking to one of the portal APIs.

    Callers that only want to know "the request did not work" catch this.
    """

    pass


class TransientError(RemedialAPIError):
    """Temporary failure that may succeed on retry.

    Examples: connection reset, read timeout, 502/503 from the portal.
    """

    pass


class RateLimitError(TransientError):
    """Portal answered 429 - needs longer backoff.

    Inherits from TransientError so tenacity will retry it.
    """

    pass


class PermanentError(RemedialAPIError):
    """Failure that won't succeed on retry.

    Examples: 400 Bad Request, a payload with success=false, malformed JSON.
    """

    pass


class AuthenticationError(PermanentError):
    """Session expired or the coordinator is not signed in (401/403)."""

    pass


class ImportFileError(RemedialError):
    """Import file could not be read or has no usable header row."""

    pass
