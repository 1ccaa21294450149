"""Tests for configuration, messages and tracing."""

import json
import logging

import pytest

from schema_forms import config as config_module
from schema_forms.compiler import SchemaCompiler
from schema_forms.config import SchemaFormsConfig, get_config, update_config
from schema_forms.messages import get_catalog, supported_locales
from schema_forms.tracing import (
    PACKAGE_LOGGER,
    OperationMetrics,
    setup_tracing,
    setup_tracing_from_config,
    traced_operation,
)


class TestSchemaFormsConfig:
    """Tests for SchemaFormsConfig."""

    def test_defaults(self):
        """Test the built-in defaults."""
        settings = SchemaFormsConfig()
        assert settings.enable_cache is True
        assert settings.cache_max_size == 100
        assert settings.locale == "en-US"
        assert settings.json_schema_draft == "http://json-schema.org/draft-07/schema#"
        assert settings.default_strict_mode is False
        assert settings.enable_tracing is False

    def test_from_env(self, monkeypatch):
        """Test reading settings from the environment."""
        monkeypatch.setenv("SCHEMA_FORMS_ENABLE_CACHE", "false")
        monkeypatch.setenv("SCHEMA_FORMS_CACHE_MAX_SIZE", "7")
        monkeypatch.setenv("SCHEMA_FORMS_LOCALE", "zh-CN")
        monkeypatch.setenv("SCHEMA_FORMS_STRICT_MODE", "TRUE")
        monkeypatch.setenv("SCHEMA_FORMS_TRACE_FILE", "trace.jsonl")
        settings = SchemaFormsConfig.from_env()
        assert settings.enable_cache is False
        assert settings.cache_max_size == 7
        assert settings.locale == "zh-CN"
        assert settings.default_strict_mode is True
        assert settings.trace_file == "trace.jsonl"
        assert settings.include_examples is True

    def test_update_config(self, monkeypatch):
        """Test updating the shared configuration."""
        monkeypatch.setattr(config_module, "config", SchemaFormsConfig())
        updated = update_config(cache_max_size=3, locale="zh-CN", unknown_setting=1)
        assert updated is get_config()
        assert updated.cache_max_size == 3
        assert not hasattr(updated, "unknown_setting")

        compiler = SchemaCompiler()
        assert compiler.locale == "zh-CN"
        assert compiler.get_cache_stats()["max_size"] == 3


class TestMessages:
    """Tests for the message catalogs."""

    def test_supported_locales(self):
        """Test the available catalogs."""
        assert supported_locales() == ["en-US", "zh-CN"]

    def test_format(self):
        """Test message parameters and locales."""
        assert get_catalog().format("min_length", min_length=3) == "Must be at least 3 characters"
        assert get_catalog("zh-CN").format("required") == "不能为空"

    def test_unknown_code(self):
        """Test the fallback for codes without a template."""
        assert get_catalog("zh-CN").format("no_such_code") == "no_such_code"

    def test_unsupported_locale(self):
        """Test that unknown locales are rejected."""
        with pytest.raises(ValueError, match="Unsupported locale"):
            get_catalog("fr-FR")

    def test_compiler_locale_switch(self, contact_form):
        """Test that one compiled schema serves both locales."""
        compiler = SchemaCompiler(locale="en-US")
        schema = compiler.compile(contact_form)
        english = compiler.validate(schema, {})
        compiler.set_locale("zh-CN")
        chinese = compiler.validate(schema, {})
        assert english.errors[0].message == "This field is required"
        assert chinese.errors[0].message == "不能为空"
        assert [e.code for e in english.errors] == [e.code for e in chinese.errors]


class TestTracing:
    """Tests for operation timing and trace output."""

    def test_traced_operation_records_metrics(self):
        """Test that timings are collected per operation."""
        metrics = OperationMetrics()
        with traced_operation("compile", metrics, fields=2) as metadata:
            metadata["cached"] = False
        with traced_operation("compile", metrics):
            pass
        snapshot = metrics.snapshot()
        assert snapshot["compile"]["count"] == 2
        assert snapshot["compile"]["max_ms"] >= snapshot["compile"]["average_ms"]
        metrics.reset()
        assert metrics.snapshot() == {}

    def test_traced_operation_records_on_error(self):
        """Test that failed operations are still timed."""
        metrics = OperationMetrics()
        with pytest.raises(RuntimeError):
            with traced_operation("validate", metrics):
                raise RuntimeError("boom")
        assert metrics.snapshot()["validate"]["count"] == 1

    def test_compiler_metrics(self, contact_form, compiler, valid_contact):
        """Test the compiler's performance report."""
        schema = compiler.compile(contact_form)
        compiler.compile(contact_form)
        compiler.validate(schema, valid_contact)
        report = compiler.get_performance_metrics()
        assert report["operations"]["compile"]["count"] == 1
        assert report["operations"]["validate"]["count"] == 1
        assert report["cache"]["hits"] == 1

    def test_file_trace(self, tmp_path, contact_form):
        """Test JSON Lines trace output."""
        trace_file = tmp_path / "trace.jsonl"
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        setup_tracing(file_path=str(trace_file))
        try:
            SchemaCompiler(enable_cache=False).compile(contact_form)
        finally:
            setup_tracing(enabled=True)
            package_logger.setLevel(logging.NOTSET)

        records = [json.loads(line) for line in trace_file.read_text(encoding="utf-8").splitlines()]
        traces = [r["trace"] for r in records if "trace" in r]
        assert any(t["operation"] == "compile" and t["fields"] == 5 for t in traces)
        assert any(r["logger"] == "schema_forms.compiler" for r in records)

    def test_disabled_tracing(self):
        """Test that disabling tracing removes handlers and silences timings."""
        setup_tracing(enabled=False)
        try:
            assert logging.getLogger("schema_forms.trace").disabled
        finally:
            setup_tracing(enabled=True)
        assert not logging.getLogger("schema_forms.trace").disabled

    def test_tracing_from_environment(self, monkeypatch, tmp_path, contact_form):
        """Test that the tracing environment variables take effect on a new compiler."""
        trace_file = tmp_path / "env-trace.jsonl"
        monkeypatch.setenv("SCHEMA_FORMS_ENABLE_TRACING", "true")
        monkeypatch.setenv("SCHEMA_FORMS_TRACE_FILE", str(trace_file))
        monkeypatch.setenv("SCHEMA_FORMS_VERBOSE", "false")
        monkeypatch.setattr(config_module, "config", SchemaFormsConfig.from_env())
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        try:
            SchemaCompiler(enable_cache=False).compile(contact_form)
        finally:
            setup_tracing(enabled=True)
            package_logger.setLevel(logging.NOTSET)

        records = [json.loads(line) for line in trace_file.read_text(encoding="utf-8").splitlines()]
        assert any(r.get("trace", {}).get("operation") == "compile" for r in records)

    def test_tracing_off_by_default(self, tmp_path):
        """Test that the default configuration attaches no handlers."""
        settings = SchemaFormsConfig(trace_file=str(tmp_path / "unused.jsonl"))
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        before = list(package_logger.handlers)
        assert setup_tracing_from_config(settings) is False
        assert package_logger.handlers == before
        assert not (tmp_path / "unused.jsonl").exists()
