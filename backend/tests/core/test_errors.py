"""Error handling tests"""

from datetime import datetime

import pytest
from fastapi import status

from helan_chat.core.errors import (
    AppError,
    CrawlInProgressError,
    create_error_response,
    raise_bad_request,
    raise_not_found,
    raise_service_unavailable,
)


class TestAppError:
    def test_basic_error(self):
        error = AppError(code="test_error", message="Something went wrong")
        assert error.code == "test_error"
        assert error.error_message == "Something went wrong"
        assert error.status_code == status.HTTP_400_BAD_REQUEST
        assert error.data is None

    def test_error_with_status_and_data(self):
        error = AppError(
            code="page_not_found",
            message="Page does not exist",
            status_code=status.HTTP_404_NOT_FOUND,
            data={"url": "https://helan.be/x"},
        )
        assert error.status_code == status.HTTP_404_NOT_FOUND
        assert error.data == {"url": "https://helan.be/x"}


class TestCreateErrorResponse:
    def test_response_body(self):
        response = create_error_response("test_code", "Message", {"a": 1})
        assert response["error"]["code"] == "test_code"
        assert response["error"]["message"] == "Message"
        assert response["error"]["data"] == {"a": 1}
        assert response["error"]["timestamp"].endswith("Z")


class TestRaiseHelpers:
    def test_not_found(self):
        with pytest.raises(AppError) as exc_info:
            raise_not_found("page", "https://helan.be/x")
        assert exc_info.value.status_code == status.HTTP_404_NOT_FOUND
        assert exc_info.value.code == "page_not_found"
        assert exc_info.value.data == {"resource": "page", "id": "https://helan.be/x"}

    def test_bad_request(self):
        with pytest.raises(AppError) as exc_info:
            raise_bad_request("empty_query", "Search text must not be empty")
        assert exc_info.value.status_code == status.HTTP_400_BAD_REQUEST

    def test_service_unavailable_keeps_cause(self):
        cause = ConnectionError("down")
        with pytest.raises(AppError) as exc_info:
            raise_service_unavailable("crawler", cause=cause)
        assert exc_info.value.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert exc_info.value.error_message == "crawler is unavailable"
        assert exc_info.value.__cause__ is cause


def test_crawl_in_progress_error():
    started = datetime(2024, 1, 1, 12, 0)
    error = CrawlInProgressError(started)
    assert error.started_at == started
    assert "already in progress" in str(error)
