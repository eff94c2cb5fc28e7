"""Tests for configuration loading and validation."""

import tempfile
from pathlib import Path

import pydantic
import pytest
import yaml

from hotornot.core.config import (
    EntityFilter,
    HotOrNotConfig,
    RatingConfig,
    StashConfig,
    clamp_rating,
    load_config,
)
from hotornot.core.errors import (
    APIKeyError,
    PoolTooSmallError,
    RepositoryError,
    ValidationError,
)


class TestEntityFilter:
    """Tests for EntityFilter."""

    def test_defaults(self):
        """Test the default filter asks for women with images."""
        entity_filter = EntityFilter()
        assert entity_filter.genders == ("FEMALE",)
        assert entity_filter.require_image is True
        assert entity_filter.min_age is None

    def test_age_range_validated(self):
        """Test min_age above max_age is rejected."""
        with pytest.raises(pydantic.ValidationError, match="min_age"):
            EntityFilter(min_age=40, max_age=30)

    def test_rating_range_validated(self):
        """Test min_rating above max_rating is rejected."""
        with pytest.raises(pydantic.ValidationError, match="min_rating"):
            EntityFilter(min_rating=80, max_rating=20)

    def test_rating_bounds(self):
        """Test rating bounds stay on the 1-100 scale."""
        with pytest.raises(pydantic.ValidationError):
            EntityFilter(min_rating=0)
        with pytest.raises(pydantic.ValidationError):
            EntityFilter(max_rating=101)

    def test_frozen(self):
        """Test filters are immutable."""
        entity_filter = EntityFilter()
        with pytest.raises(pydantic.ValidationError):
            entity_filter.min_age = 21


class TestHotOrNotConfig:
    """Tests for HotOrNotConfig."""

    def test_defaults(self):
        """Test an empty config is valid."""
        config = HotOrNotConfig()
        assert config.entity_kind == "performers"
        assert config.mode == "swiss"
        assert config.rating.k_factor == 8
        assert config.rating.scale == 40.0
        assert config.matchmaking.swiss_window == 15

    def test_invalid_mode(self):
        """Test unknown modes are rejected."""
        with pytest.raises(pydantic.ValidationError):
            HotOrNotConfig(mode="roundrobin")

    def test_invalid_k_factor(self):
        """Test a non-positive K-factor is rejected."""
        with pytest.raises(pydantic.ValidationError):
            RatingConfig(k_factor=0)


class TestStashConfig:
    """Tests for StashConfig."""

    def test_api_key_from_config(self, monkeypatch):
        """Test an explicit key wins over the environment."""
        monkeypatch.setenv("STASH_API_KEY", "env-key")
        assert StashConfig(api_key="cfg-key").get_api_key() == "cfg-key"

    def test_api_key_from_env(self, monkeypatch):
        """Test the key falls back to STASH_API_KEY."""
        monkeypatch.setenv("STASH_API_KEY", "env-key")
        assert StashConfig().get_api_key() == "env-key"

    def test_api_key_optional(self, monkeypatch):
        """Test a missing key is allowed."""
        monkeypatch.delenv("STASH_API_KEY", raising=False)
        assert StashConfig().get_api_key() is None


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_valid_config(self):
        """Test loading a valid config file."""
        config_data = {
            "entity_kind": "scenes",
            "mode": "gauntlet",
            "filter": {"genders": [], "min_rating": 20},
            "rating": {"k_factor": 12},
            "stash": {"url": "http://stash.local:9999/graphql"},
            "stats_db": None,
        }

        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            yaml.dump(config_data, f)
            config_path = f.name

        try:
            config = load_config(config_path)
            assert config.entity_kind == "scenes"
            assert config.mode == "gauntlet"
            assert config.filter.genders == ()
            assert config.filter.min_rating == 20
            assert config.rating.k_factor == 12
            assert config.stash.url == "http://stash.local:9999/graphql"
            assert config.stats_db is None
        finally:
            Path(config_path).unlink()

    def test_load_empty_file(self, tmp_path):
        """Test an empty file yields the defaults."""
        config_path = tmp_path / "empty.yaml"
        config_path.write_text("")
        assert load_config(config_path) == HotOrNotConfig()

    def test_load_missing_file(self):
        """Test loading non-existent file raises error."""
        with pytest.raises(FileNotFoundError):
            load_config("/nonexistent/config.yaml")

    def test_invalid_value_names_field(self, tmp_path):
        """Test invalid values raise ValidationError naming the field."""
        config_path = tmp_path / "bad.yaml"
        config_path.write_text(yaml.dump({"rating": {"k_factor": 0}}))

        with pytest.raises(ValidationError) as exc_info:
            load_config(config_path)
        assert "rating.k_factor" in str(exc_info.value)

    def test_non_mapping_rejected(self, tmp_path):
        """Test a YAML list is not a config."""
        config_path = tmp_path / "list.yaml"
        config_path.write_text("- swiss\n- gauntlet\n")

        with pytest.raises(ValidationError, match="root"):
            load_config(config_path)

    def test_example_config_is_valid(self):
        """Test the shipped example config loads."""
        example = Path(__file__).resolve().parent.parent / "config.example.yaml"
        config = load_config(example)
        assert config.filter == EntityFilter()


class TestClampRating:
    """Tests for clamp_rating."""

    def test_in_range(self):
        assert clamp_rating(42) == 42

    def test_clamped(self):
        assert clamp_rating(0) == 1
        assert clamp_rating(140) == 100


class TestErrors:
    """Tests for error messages."""

    def test_api_key_error_suggests_env(self):
        """Test the API key error points at STASH_API_KEY."""
        assert "STASH_API_KEY" in str(APIKeyError())

    def test_pool_too_small_message(self):
        """Test the pool error names the kind and the count."""
        error = PoolTooSmallError("scenes", 1)
        assert "scenes" in str(error)
        assert "1 match" in str(error)

    def test_repository_error_message(self):
        error = RepositoryError("graphql request", "timeout")
        assert str(error) == "graphql request failed: timeout"
