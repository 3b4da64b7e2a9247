"""Unit tests for the Result type."""

import pytest

from crafttree.core.errors import BackendError
from crafttree.core.result import Err, Ok


class TestResult:
    def test_ok(self):
        result = Ok(3)
        assert result.is_ok() and not result.is_err()
        assert result.unwrap() == 3

    def test_err(self):
        result = Err(BackendError("down", status_code=503))
        assert result.is_err() and not result.is_ok()
        with pytest.raises(ValueError, match="down"):
            result.unwrap()


class TestBackendError:
    def test_str_includes_status(self):
        assert str(BackendError("Backend request failed", status_code=404)) == "Backend request failed (HTTP 404)"
        assert str(BackendError("Backend unreachable")) == "Backend unreachable"
