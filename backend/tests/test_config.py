"""Tests for settings validation."""

import pytest
from pydantic import ValidationError

from offline_pos.core.config import Settings


class TestSettings:
    """Test configuration defaults and validation."""

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.sync_submit_timeout_seconds == 10.0
        assert settings.slow_connection_threshold_seconds == 3.0
        assert settings.remote_sale_path == "/api/pos/create-sale"
        assert settings.sync_on_enqueue is True
        assert settings.enqueue_sync_delay_seconds == 0.1

    def test_base_url_trailing_slash_stripped(self):
        settings = Settings(_env_file=None, remote_api_base_url="http://pos.local/")
        assert settings.remote_api_base_url == "http://pos.local"

    @pytest.mark.parametrize("field", ["sync_submit_timeout_seconds", "slow_connection_threshold_seconds"])
    def test_timeouts_must_be_positive(self, field):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: 0})

    def test_interval_may_be_zero(self):
        settings = Settings(_env_file=None, connectivity_check_interval_seconds=0)
        assert settings.connectivity_check_interval_seconds == 0

    @pytest.mark.parametrize("field", ["reconnect_sync_delay_seconds", "enqueue_sync_delay_seconds"])
    def test_negative_delay_rejected(self, field):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: -1})

    def test_cors_origins_list(self):
        settings = Settings(_env_file=None, cors_origins="http://a.test, http://b.test")
        assert settings.cors_origins_list == ["http://a.test", "http://b.test"]
        assert Settings(_env_file=None, cors_origins="*").cors_origins_list == ["*"]
