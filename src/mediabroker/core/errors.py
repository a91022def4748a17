"""Base error carrying request context.

Every mediabroker error renders the URL, format name and codec list it was
raised for, so a caller can log one actionable line per failure.
"""

from __future__ import annotations

from collections.abc import Sequence


class BrokerError(Exception):
    """Base class for mediabroker errors."""

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        format_name: str | None = None,
        codecs: Sequence[str] | None = None,
    ) -> None:
        self.message = message
        self.url = url
        self.format_name = format_name
        self.codecs = tuple(codecs) if codecs is not None else None
        super().__init__(message)

    def with_context(
        self,
        *,
        url: str | None = None,
        format_name: str | None = None,
        codecs: Sequence[str] | None = None,
    ) -> BrokerError:
        """Fill in context fields that are not already set.

        Returns:
            self, so callers can write ``raise e.with_context(url=url)``.
        """
        if self.url is None and url is not None:
            self.url = url
        if self.format_name is None and format_name is not None:
            self.format_name = format_name
        if self.codecs is None and codecs is not None:
            self.codecs = tuple(codecs)
        return self

    def __str__(self) -> str:
        context = []
        if self.url:
            context.append(f"url={self.url}")
        if self.format_name:
            context.append(f"format={self.format_name}")
        if self.codecs:
            context.append(f"codecs={','.join(self.codecs)}")
        if not context:
            return self.message
        return f"{self.message} ({' '.join(context)})"
