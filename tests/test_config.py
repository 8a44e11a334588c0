"""Tests for settings validation."""

import pytest
from pydantic import ValidationError

from soundmates.core.config import Settings


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestSettings:
    def test_defaults(self):
        settings = make_settings()

        assert settings.similarity_weights == (0.6, 0.4)
        assert settings.SIMILARITY_THRESHOLD == 0.20
        assert settings.COMMUNITY_RESOLUTION == 1.0

    def test_postgres_url_fixed(self):
        settings = make_settings(DATABASE_URL="postgres://u:p@host:5432/db")

        assert settings.DATABASE_URL == "postgresql://u:p@host:5432/db"

    def test_hobby_schema_uses_tags_only(self):
        settings = make_settings(ATTRIBUTE_SCHEMA=" Hobbies ")

        assert settings.ATTRIBUTE_SCHEMA == "hobbies"
        assert settings.similarity_weights == (0.0, 1.0)

    def test_unknown_schema(self):
        with pytest.raises(ValidationError):
            make_settings(ATTRIBUTE_SCHEMA="books")

    def test_weights_must_sum_to_one(self):
        with pytest.raises(ValidationError):
            make_settings(ARTIST_WEIGHT=0.5, GENRE_WEIGHT=0.4)

    def test_threshold_range(self):
        with pytest.raises(ValidationError):
            make_settings(SIMILARITY_THRESHOLD=1.5)

    def test_cors_origins_list(self):
        settings = make_settings(CORS_ORIGINS="http://a.test, http://b.test,")

        assert settings.cors_origins_list == ["http://a.test", "http://b.test"]
