"""Decorators for tracing MCP tools and resources."""

import functools
from collections.abc import Callable
from datetime import datetime
from typing import Any

import logfire


def trace_tool(tool_name: str):
    """Wrap an async tool handler in a Logfire span."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(arguments: dict[str, Any], *args, **kwargs):
            with logfire.span(
                f"tool.execution.{tool_name}",
                tool_name=tool_name,
                tool_category=_categorize_tool(tool_name),
            ) as span:
                start_time = datetime.now()
                _add_attributes(span, "input", arguments)

                try:
                    result = await func(arguments, *args, **kwargs)
                except Exception as e:
                    span.set_attribute("tool.success", False)
                    span.set_attribute("tool.error", str(e))
                    raise

                span.set_attribute("tool.success", not result.get("isError", False))
                span.set_attribute(
                    "tool.duration_ms", (datetime.now() - start_time).total_seconds() * 1000
                )
                if result.get("isError"):
                    span.set_attribute("tool.error_reason", result.get("data", {}).get("reason", ""))
                return result

        return wrapper

    return decorator


def trace_resource(resource_type: str):
    """Lightweight span around a resource read."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            with logfire.span(
                f"resource.read.{resource_type}",
                resource_type=resource_type,
            ) as span:
                _add_attributes(span, "input", kwargs)
                result = await func(*args, **kwargs)
                if isinstance(result, dict):
                    span.set_attribute("result.keys", ",".join(sorted(result)))
                return result

        return wrapper

    return decorator


def _categorize_tool(tool_name: str) -> str:
    if tool_name in ("checkout_books", "return_book", "renew_loan"):
        return "circulation"
    if tool_name in ("check_borrowing_eligibility", "preview_late_fee"):
        return "advisory"
    if "settings" in tool_name:
        return "administration"
    return "general"


def _add_attributes(span, prefix: str, data: dict[str, Any]) -> None:
    """Scalar arguments only; ids and flags, no free text beyond them."""
    for key, value in data.items():
        if isinstance(value, str | int | float | bool):
            span.set_attribute(f"{prefix}.{key}", value)
        elif isinstance(value, list):
            span.set_attribute(f"{prefix}.{key}.count", len(value))
