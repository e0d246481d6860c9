"""Tests for the application's error translation."""

import json

from starlette.requests import Request

from clinic_api.core.errors import NotFoundError, UnexpectedError
from clinic_api.main import clinic_error_handler, global_exception_handler


def make_request(path: str = "/api/v1/services") -> Request:
    return Request(
        {
            "type": "http",
            "method": "GET",
            "scheme": "http",
            "server": ("testserver", 80),
            "path": path,
            "raw_path": path.encode(),
            "query_string": b"",
            "headers": [],
        }
    )


class TestErrorHandlers:
    async def test_typed_error_keeps_message(self) -> None:
        response = await clinic_error_handler(make_request(), NotFoundError("Service not found"))

        assert response.status_code == 404
        assert json.loads(response.body) == {"detail": "Service not found"}

    async def test_unexpected_error_hides_message(self) -> None:
        response = await clinic_error_handler(make_request(), UnexpectedError("pool exhausted"))

        assert response.status_code == 500
        assert json.loads(response.body) == {"detail": "Internal server error"}

    async def test_untyped_exception_becomes_unexpected_error(self, caplog) -> None:
        response = await global_exception_handler(make_request(), RuntimeError("boom"))

        assert response.status_code == 500
        assert json.loads(response.body) == {"detail": "Internal server error"}
        assert "Unhandled exception: boom" in caplog.text
