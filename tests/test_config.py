"""
Tests for configuration loading.
"""

import pytest

from gastocerto.config import (
    AppSettings,
    GeminiSettings,
    get_settings,
    validate_all_settings,
)


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestAppSettings:
    """Tests for application defaults and overrides."""

    def test_defaults(self, monkeypatch):
        """Test the built-in defaults."""
        monkeypatch.delenv("MAX_INSTALLMENTS", raising=False)
        settings = AppSettings(_env_file=None)
        assert settings.max_installments == 72
        assert settings.session_file == ".gastocerto/session.json"
        assert settings.max_upload_size_bytes == 10 * 1024 * 1024

    def test_environment_override(self, monkeypatch):
        """Test reading a value from the environment."""
        monkeypatch.setenv("MAX_INSTALLMENTS", "24")
        assert AppSettings(_env_file=None).max_installments == 24

    def test_installment_floor(self, monkeypatch):
        """Test that fewer than 2 installments cannot be configured."""
        monkeypatch.setenv("MAX_INSTALLMENTS", "1")
        with pytest.raises(ValueError):
            AppSettings(_env_file=None)


class TestGeminiSettings:
    """Tests for recognition settings."""

    def test_prefixed_variables(self, monkeypatch):
        """Test the GEMINI_ prefix and model default."""
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")
        monkeypatch.delenv("GEMINI_MODEL_NAME", raising=False)
        settings = GeminiSettings()
        assert settings.api_key == "test-key"
        assert settings.model_name == "gemini-2.0-flash"


class TestValidateAllSettings:
    """Tests for the startup check."""

    def test_missing_key_reported(self, monkeypatch):
        """Test that missing credentials are reported, not raised."""
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        results = validate_all_settings()
        assert results["gemini"] is False
        assert "gemini_error" in results
        assert results["app"] is True


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
