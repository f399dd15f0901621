"""
Gate Error Responses
====================
Minimal plain-text responses for failures that are not the user's doing.

Technical detail belongs in the logs, never in these bodies.
"""

from starlette.responses import PlainTextResponse

NO_STORE = {"Cache-Control": "no-store"}


def error_response(status_code: int, message: str) -> PlainTextResponse:
    """Plain-text error that intermediaries must not cache."""
    return PlainTextResponse(message, status_code=status_code, headers=NO_STORE)


class GateErrors:
    """Pre-defined responses for the gate's failure classes."""

    @staticmethod
    def provider_failure() -> PlainTextResponse:
        return error_response(500, "Failed to verify challenge")

    @staticmethod
    def pending_request_missing() -> PlainTextResponse:
        return error_response(500, "Could not find original request")

    @staticmethod
    def unreadable_body() -> PlainTextResponse:
        return error_response(500, "Could not buffer request")

    @staticmethod
    def missing_request_id() -> PlainTextResponse:
        return error_response(400, "Missing request_id")

    @staticmethod
    def upstream_failure(status_code: int) -> PlainTextResponse:
        message = "Gateway Timeout" if status_code == 504 else "Bad Gateway"
        return error_response(status_code, message)
