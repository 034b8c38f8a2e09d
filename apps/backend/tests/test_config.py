"""Tests for settings validation."""

import pytest
from pydantic import ValidationError

from mediagrab.config import Settings


class TestSettings:
    def test_proxies_are_parsed(self) -> None:
        s = Settings(proxy_list=" http://u:p@a.example:8080 , socks5://b.example:1080,")
        assert s.proxies == ["http://u:p@a.example:8080", "socks5://b.example:1080"]

    def test_proxy_with_bad_port_is_rejected(self) -> None:
        with pytest.raises(ValidationError, match="invalid proxy"):
            Settings(proxy_list="http://a.example:8080,http://h:99999")

    @pytest.mark.parametrize("field", ["user_agents", "accept_languages"])
    def test_identity_pools_must_not_be_empty(self, field: str) -> None:
        with pytest.raises(ValidationError):
            Settings(**{field: []})

    def test_derived_durations(self) -> None:
        s = Settings(file_retention_hours=2, cleanup_interval_minutes=5)
        assert s.file_retention_s == 7200
        assert s.cleanup_interval_s == 300
