"""Typed failures raised by the upstream model clients."""

from __future__ import annotations


class UpstreamError(RuntimeError):
    """The model provider was unreachable or rejected the request."""


class MalformedResponseError(UpstreamError):
    """The provider answered, but the payload could not be interpreted."""


class NotConfiguredError(RuntimeError):
    """A client was used without the credentials it needs."""
