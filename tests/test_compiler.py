"""Tests for the schema compiler."""

import asyncio

import pytest
from conftest import conditional_form

from schema_forms.compiler import (
    SchemaCache,
    SchemaCompiler,
    clear_schema_cache,
    compile_form_metadata,
    content_hash,
    validate_form_data,
)
from schema_forms.errors import (
    AsyncRulesPresentError,
    CircularConditionError,
    ConfigurationError,
    DuplicateFieldError,
    FieldTypeError,
    InvalidConditionError,
    InvalidDefaultError,
    MissingOptionsError,
    UnknownConditionFieldError,
)
from schema_forms.models import FormMetadata
from schema_forms.models.field_definitions import AsyncRule, FieldValidation


def form(*fields) -> FormMetadata:
    return FormMetadata.model_validate({"version": "1.0.0", "fields": list(fields)})


class TestCompile:
    """Tests for compilation and configuration errors."""

    def test_compiled_fields_in_order(self, compiler, contact_form):
        """Test that compiled fields keep declaration order."""
        schema = compiler.compile(contact_form)
        assert schema.field_names == ["name", "email", "subject", "message", "newsletter"]
        assert schema.version == "1.0.0"
        assert not schema.has_async_rules

    def test_unknown_type(self, compiler):
        """Test that an unknown type fails compilation, not validation."""
        with pytest.raises(FieldTypeError) as exc_info:
            compiler.compile(form({"id": "a", "name": "a", "type": "colour"}))
        assert exc_info.value.field_id == "a"

    def test_duplicate_id(self, compiler):
        """Test duplicate ids are rejected."""
        with pytest.raises(DuplicateFieldError):
            compiler.compile(form(
                {"id": "a", "name": "a", "type": "text"},
                {"id": "a", "name": "b", "type": "text"},
            ))

    def test_all_problems_reported(self, compiler):
        """Test that one compile pass reports every structural problem."""
        metadata = form(
            {"id": "a", "name": "a", "type": "text"},
            {"id": "b", "name": "a", "type": "text"},
            {"id": "c", "name": "c", "type": "select"},
            {"id": "d", "name": "d", "type": "text",
             "condition": {"fieldId": "ghost", "operator": "empty"}},
        )
        with pytest.raises(ConfigurationError) as exc_info:
            compiler.compile(metadata)
        kinds = {type(e) for e in exc_info.value.errors}
        assert kinds == {DuplicateFieldError, MissingOptionsError, UnknownConditionFieldError}
        assert "3 problems" in str(exc_info.value)

    def test_malformed_condition(self, compiler):
        """Test conditions with neither clause nor nested conditions."""
        with pytest.raises(InvalidConditionError):
            compiler.compile(form(
                {"id": "a", "name": "a", "type": "text"},
                {"id": "b", "name": "b", "type": "text", "condition": {"logic": "AND"}},
            ))

    def test_cyclic_conditions(self, compiler):
        """Test that mutual condition references fail before any validation."""
        metadata = form(
            {"id": "a", "name": "a", "type": "text",
             "condition": {"fieldId": "b", "operator": "not_empty"}},
            {"id": "b", "name": "b", "type": "text",
             "condition": {"fieldId": "a", "operator": "not_empty"}},
        )
        with pytest.raises(CircularConditionError) as exc_info:
            compiler.compile(metadata)
        assert exc_info.value.cycle[0] == exc_info.value.cycle[-1]
        assert compiler.get_cache_stats()["size"] == 0

    def test_invalid_default(self, compiler):
        """Test that a default failing the field's coercion is rejected."""
        with pytest.raises(InvalidDefaultError):
            compiler.compile(form({"id": "n", "name": "n", "type": "number", "defaultValue": "many"}))


class TestCache:
    """Tests for compiled schema caching."""

    def test_cosmetic_edits_share_schema(self, compiler, contact_form):
        """Test that label/placeholder/description edits reuse the cached schema."""
        edited = contact_form.model_copy(deep=True)
        edited.fields[0].label = "Full name"
        edited.fields[0].placeholder = "Your name"
        edited.fields[3].description = "What do you need?"
        edited.fields[2].options[0].label = "Products"
        edited.title = "Get in touch"
        assert compiler.compile(contact_form) is compiler.compile(edited)

    @pytest.mark.parametrize("path,value", [
        (("type",), "textarea"),
        (("required",), False),
        (("validation",), FieldValidation(min_length=3)),
    ])
    def test_structural_edits_recompile(self, compiler, contact_form, path, value):
        """Test that type/required/validation changes produce a new schema."""
        edited = contact_form.model_copy(deep=True)
        setattr(edited.fields[0], path[0], value)
        assert compiler.compile(contact_form) is not compiler.compile(edited)

    def test_condition_edit_recompiles(self, compiler):
        """Test that a condition change produces a new schema."""
        first = conditional_form()
        second = conditional_form(condition={"fieldId": "a", "operator": "equals", "value": "z"})
        assert content_hash(first) != content_hash(second)
        assert compiler.compile(first) is not compiler.compile(second)

    def test_layout_not_in_hash(self, contact_form):
        """Test that layout is cosmetic for caching."""
        edited = contact_form.model_copy(deep=True)
        edited.fields[0].layout = None
        assert content_hash(contact_form) == content_hash(edited)

    def test_stats_and_clear(self, compiler, contact_form):
        """Test hit/miss accounting and clearing."""
        compiler.compile(contact_form)
        compiler.compile(contact_form)
        stats = compiler.get_cache_stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["size"] == 1
        compiler.clear_cache()
        assert compiler.get_cache_stats()["size"] == 0

    def test_cache_disabled(self, contact_form):
        """Test that a compiler without cache builds fresh, equal schemas."""
        compiler = SchemaCompiler(enable_cache=False)
        first = compiler.compile(contact_form)
        second = compiler.compile(contact_form)
        assert first is not second
        assert first.cache_key == second.cache_key

    def test_lru_eviction(self):
        """Test that the least recently used entry is evicted."""
        cache = SchemaCache(max_size=2)
        compiler = SchemaCompiler()
        schemas = [compiler.compile(form({"id": f"f{i}", "name": f"f{i}", "type": "text"}))
                   for i in range(3)]
        cache.put(schemas[0].cache_key, schemas[0])
        cache.put(schemas[1].cache_key, schemas[1])
        assert cache.get(schemas[0].cache_key) is schemas[0]
        cache.put(schemas[2].cache_key, schemas[2])
        assert schemas[1].cache_key not in cache
        assert schemas[0].cache_key in cache
        assert len(cache) == 2

    def test_dependents_are_read_only(self, compiler):
        """Test that published schemas cannot be mutated."""
        schema = compiler.compile(conditional_form())
        assert schema.dependents_of("a") == ("b",)
        with pytest.raises(TypeError):
            schema.dependents["a"] = ()


class TestValidate:
    """Tests for synchronous validation."""

    def test_contact_form_success(self, compiler, contact_form, valid_contact):
        """Test the contact form scenario with checkbox coercion."""
        result = compiler.validate(compiler.compile(contact_form), valid_contact)
        assert result.success
        assert result.data["newsletter"] is True
        assert result.data["subject"] == "product"

    def test_contact_form_missing_subject(self, compiler, contact_form, valid_contact):
        """Test that omitting subject fails with one required error on subject only."""
        del valid_contact["subject"]
        result = compiler.validate(compiler.compile(contact_form), valid_contact)
        assert not result.success
        assert [(e.field_id, e.code) for e in result.errors] == [("subject", "required")]

    def test_collects_all_errors_in_order(self, compiler, contact_form):
        """Test full-form feedback in declaration order."""
        result = compiler.validate(compiler.compile(contact_form), {
            "name": "Z", "subject": "nope", "message": "short", "newsletter": "maybe",
        })
        assert [e.field_id for e in result.errors] == [
            "name", "email", "subject", "message", "newsletter",
        ]

    def test_determinism(self, compiler, contact_form):
        """Test that validating twice yields equal results."""
        schema = compiler.compile(contact_form)
        data = {"name": "Z", "email": "", "subject": "other"}
        assert compiler.validate(schema, data) == compiler.validate(schema, data)

    def test_defaults_and_unknown_keys(self, compiler, contact_form, valid_contact):
        """Test that optional empty fields take defaults and unknown keys are dropped."""
        del valid_contact["newsletter"]
        valid_contact["extra"] = "ignored"
        result = compiler.validate(compiler.compile(contact_form), valid_contact)
        assert result.data["newsletter"] is False
        assert "extra" not in result.data

    def test_conditional_requiredness(self, compiler):
        """Test that b is required only while its condition holds."""
        schema = compiler.compile(conditional_form())
        shown = compiler.validate(schema, {"a": "x", "b": ""})
        assert [e.code for e in shown.errors] == ["required"]
        hidden = compiler.validate(schema, {"a": "y", "b": ""})
        assert hidden.success

    def test_hidden_field_excluded(self, compiler):
        """Test that a hidden field is neither validated nor returned."""
        schema = compiler.compile(conditional_form(validation={"minLength": 5}))
        result = compiler.validate(schema, {"a": "y", "b": "abc"})
        assert result.success
        assert "b" not in result.data

    def test_locale(self, contact_form):
        """Test localized messages."""
        compiler = SchemaCompiler(locale="zh-CN")
        result = compiler.validate(compiler.compile(contact_form), {})
        assert result.errors[0].message == "不能为空"
        compiler.set_locale("en-US")
        assert compiler.locale == "en-US"
        result = compiler.validate(compiler.compile(contact_form), {})
        assert result.errors[0].message == "This field is required"

    def test_async_rules_need_async_path(self, compiler):
        """Test that sync validation refuses schemas with async rules."""
        async def check(value):
            return True

        metadata = form({"id": "u", "name": "u", "type": "text"})
        metadata.fields[0].validation = FieldValidation(
            async_rules=[AsyncRule(name="unique", validator=check)]
        )
        schema = compiler.compile(metadata)
        with pytest.raises(AsyncRulesPresentError):
            compiler.validate(schema, {"u": "x"})

    def test_get_defaults(self, compiler, contact_form):
        """Test the initial value-set."""
        contact_form.fields[2].default_value = "support"
        assert compiler.get_defaults(contact_form) == {"subject": "support", "newsletter": False}

    def test_compute_visibility(self, compiler):
        """Test visibility for a payload keyed by name."""
        assert compiler.compute_visibility(conditional_form(), {"a": "y"}) == {"a": True, "b": False}

    def test_performance_metrics(self, compiler, contact_form):
        """Test that compile and validate timings are recorded."""
        schema = compiler.compile(contact_form)
        compiler.validate(schema, {})
        operations = compiler.get_performance_metrics()["operations"]
        assert operations["compile"]["count"] == 1
        assert operations["validate"]["count"] == 1


class TestValidateAsync:
    """Tests for validation with async rules."""

    def _form_with_rules(self, compiler, rules: dict):
        metadata = form(*[
            {"id": name, "name": name, "type": "text", "validation": {"minLength": 2}}
            for name in rules
        ])
        for field in metadata.fields:
            field.validation.async_rules = [
                AsyncRule(name="remote", message=f"{field.id} rejected", validator=rules[field.id])
            ]
        return compiler.compile(metadata)

    @pytest.mark.asyncio
    async def test_errors_merged_in_declaration_order(self, compiler):
        """Test that completion order does not affect error order."""
        async def slow(value):
            await asyncio.sleep(0.05)
            return False

        async def fast(value):
            return False

        schema = self._form_with_rules(compiler, {"first": slow, "second": fast})
        result = await compiler.validate_async(schema, {"first": "aa", "second": "bb"})
        assert [e.field_id for e in result.errors] == ["first", "second"]
        assert result.errors[0].message == "first rejected"

    @pytest.mark.asyncio
    async def test_async_skipped_when_sync_invalid(self, compiler):
        """Test that async rules only run after sync rules pass."""
        calls = []

        async def record(value):
            calls.append(value)
            return True

        schema = self._form_with_rules(compiler, {"only": record})
        result = await compiler.validate_async(schema, {"only": "a"})
        assert [e.code for e in result.errors] == ["min_length"]
        assert calls == []
        result = await compiler.validate_async(schema, {"only": "ab"})
        assert result.success
        assert calls == ["ab"]

    @pytest.mark.asyncio
    async def test_rule_exception(self, compiler):
        """Test that a raising async rule yields async_validation_error."""
        async def offline(value):
            raise TimeoutError()

        schema = self._form_with_rules(compiler, {"only": offline})
        result = await compiler.validate_async(schema, {"only": "ab"})
        assert [e.code for e in result.errors] == ["async_validation_error"]


class TestModuleFunctions:
    """Tests for the default-compiler convenience functions."""

    def test_validate_form_data(self, contact_form, valid_contact):
        """Test compile-and-validate in one call."""
        clear_schema_cache()
        assert validate_form_data(contact_form, valid_contact).success
        assert compile_form_metadata(contact_form) is compile_form_metadata(contact_form)
        clear_schema_cache()
