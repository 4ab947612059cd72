"""Tests for configuration models and YAML loading."""

from pathlib import Path
from textwrap import dedent

import pytest
from pydantic import ValidationError

from jobpipe.core.config import (
    DEFAULT_SOURCE_PRIORITY,
    AggregationConfig,
    ClassificationConfig,
    DatabaseConfig,
    Settings,
    SourceConfig,
)
from jobpipe.core.schemas import SourceId


class TestSourceConfig:
    def test_defaults(self) -> None:
        c = SourceConfig()
        assert c.enabled is True
        assert c.base_url is None
        assert c.results_per_page == 25


class TestAggregationConfig:
    def test_defaults(self) -> None:
        a = AggregationConfig()
        assert a.per_source_timeout == 10.0
        assert a.source_priority == DEFAULT_SOURCE_PRIORITY

    def test_timeout_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            AggregationConfig(per_source_timeout=0)

    def test_priority_completed_with_missing_sources(self) -> None:
        a = AggregationConfig(source_priority=["usajobs"])
        assert a.source_priority == [SourceId.USAJOBS, SourceId.FINDWORK, SourceId.JOOBLE]

    def test_priority_duplicates_rejected(self) -> None:
        with pytest.raises(ValidationError):
            AggregationConfig(source_priority=["jooble", "jooble"])


class TestClassificationConfig:
    def test_defaults(self) -> None:
        c = ClassificationConfig()
        assert c.timeout == 30.0
        assert c.max_concurrency == 4

    def test_concurrency_min(self) -> None:
        with pytest.raises(ValidationError):
            ClassificationConfig(max_concurrency=0)


class TestSettings:
    def test_defaults(self) -> None:
        s = Settings()
        assert s.database == DatabaseConfig()
        assert s.source(SourceId.FINDWORK).api_key_env == "FINDWORK_API_KEY"
        assert s.source(SourceId.USAJOBS).user_agent_env == "USAJOBS_USER_AGENT"

    def test_source_override_keeps_default_env(self) -> None:
        s = Settings(sources={"jooble": {"enabled": False}})
        jooble = s.source(SourceId.JOOBLE)
        assert jooble.enabled is False
        assert jooble.api_key_env == "JOOBLE_API_KEY"
        assert s.source(SourceId.FINDWORK).enabled is True

    def test_unknown_source_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(sources={"monster": {"enabled": True}})


class TestFromYaml:
    def test_load(self, tmp_path: Path) -> None:
        p = tmp_path / "settings.yaml"
        p.write_text(dedent("""\
            database:
              path: /tmp/jobs.db
            aggregation:
              per_source_timeout: 5
              source_priority: [jooble, findwork, usajobs]
            sources:
              usajobs:
                results_per_page: 50
            classification:
              max_concurrency: 2
        """))
        s = Settings.from_yaml(p)
        assert s.database.path == "/tmp/jobs.db"
        assert s.aggregation.per_source_timeout == 5.0
        assert s.aggregation.source_priority[0] == SourceId.JOOBLE
        assert s.source(SourceId.USAJOBS).results_per_page == 50
        assert s.source(SourceId.USAJOBS).api_key_env == "USAJOBS_API_KEY"
        assert s.classification.max_concurrency == 2

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        p = tmp_path / "empty.yaml"
        p.write_text("")
        assert Settings.from_yaml(p) == Settings()

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            Settings.from_yaml(tmp_path / "nope.yaml")

    def test_example_file_loads(self) -> None:
        example = Path(__file__).parents[2] / "config" / "settings.example.yaml"
        s = Settings.from_yaml(example)
        assert s.aggregation.default_sources == DEFAULT_SOURCE_PRIORITY
