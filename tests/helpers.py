"""Builders for Responses API style objects used across tests."""

import json
from types import SimpleNamespace


def text_response(text: str) -> SimpleNamespace:
    """Build a response carrying one output_text entry."""
    return SimpleNamespace(
        output=[SimpleNamespace(type="message", content=[{"type": "output_text", "text": text}])],
    )


def function_call_response(name: str, arguments) -> SimpleNamespace:
    """Build a response carrying one function call."""
    raw = arguments if isinstance(arguments, str) else json.dumps(arguments)
    return SimpleNamespace(output=[SimpleNamespace(type="function_call", name=name, arguments=raw)])
