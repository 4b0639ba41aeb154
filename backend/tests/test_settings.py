import pytest
from pydantic import ValidationError

from tripplanner.core.settings import Settings


class TestSettings:
    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert (settings.MIN_ITINERARY_DAYS, settings.MAX_ITINERARY_DAYS) == (1, 30)
        assert (settings.MIN_RADIUS_METERS, settings.MAX_RADIUS_METERS) == (100, 20000)
        assert settings.NEUTRAL_PREFERENCE_WEIGHT == 0.0

    def test_allowed_origins_from_env(self, monkeypatch):
        monkeypatch.setenv("ALLOWED_ORIGINS", "https://a.example, https://b.example,")
        settings = Settings(_env_file=None)
        assert settings.ALLOWED_ORIGINS == ["https://a.example", "https://b.example"]

    def test_max_days_must_be_positive(self, monkeypatch):
        monkeypatch.setenv("MAX_ITINERARY_DAYS", "0")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)
