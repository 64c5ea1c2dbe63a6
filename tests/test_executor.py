from unittest.mock import Mock, patch

import pytest
import requests

from hookwise.errors import ExecutorError
from hookwise.utils.executor import execute_automation


def test_posts_to_executor_with_service_key(app):
    resp = Mock(status_code=200, text="{}")
    resp.json.return_value = {"execution_id": "ex-1"}
    with patch("hookwise.utils.executor.requests.post", return_value=resp) as post:
        result = execute_automation("auto1", {"source": "webhook"})

    assert result == {"execution_id": "ex-1"}
    args, kwargs = post.call_args
    assert args[0] == "https://executor.example.com/execute-automation"
    assert kwargs["json"] == {"automation_id": "auto1", "trigger_data": {"source": "webhook"}}
    assert kwargs["headers"]["Authorization"] == "Bearer svc-key"
    assert kwargs["timeout"] == 5


def test_non_json_body_is_empty_result(app):
    resp = Mock(status_code=202, text="accepted")
    resp.json.side_effect = ValueError("not json")
    with patch("hookwise.utils.executor.requests.post", return_value=resp):
        assert execute_automation("auto1", {}) == {}


def test_error_status_raises(app):
    with patch("hookwise.utils.executor.requests.post", return_value=Mock(status_code=500, text="boom")):
        with pytest.raises(ExecutorError) as exc:
            execute_automation("auto1", {})

    assert exc.value.status_code == 500
    assert "boom" in str(exc.value)


def test_unreachable_executor_raises(app):
    with patch("hookwise.utils.executor.requests.post", side_effect=requests.exceptions.ConnectionError("down")):
        with pytest.raises(ExecutorError):
            execute_automation("auto1", {})


def test_unconfigured_executor_raises(app):
    app.config["EXECUTOR"] = {"url": "", "service_key": "", "timeout": 5}
    with patch("hookwise.utils.executor.requests.post") as post:
        with pytest.raises(ExecutorError):
            execute_automation("auto1", {})
    post.assert_not_called()
