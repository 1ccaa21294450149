"""Shared fixtures for schema-forms tests."""

import copy

import pytest

from schema_forms.compiler import SchemaCompiler
from schema_forms.models import FormMetadata

CONTACT_FORM = {
    "version": "1.0.0",
    "title": "Contact Us",
    "description": "Send us a message",
    "fields": [
        {
            "id": "name",
            "name": "name",
            "type": "text",
            "label": "Name",
            "required": True,
            "validation": {"minLength": 2, "maxLength": 50},
            "layout": {"span": 24, "md": {"span": 12}},
        },
        {
            "id": "email",
            "name": "email",
            "type": "text",
            "label": "Email",
            "required": True,
            "layout": {"span": 24, "md": {"span": 12}},
        },
        {
            "id": "subject",
            "name": "subject",
            "type": "select",
            "label": "Subject",
            "required": True,
            "options": [
                {"value": "product", "label": "Product"},
                {"value": "support", "label": "Support"},
                {"value": "partnership", "label": "Partnership"},
                {"value": "other", "label": "Other"},
            ],
        },
        {
            "id": "message",
            "name": "message",
            "type": "textarea",
            "label": "Message",
            "required": True,
            "validation": {"minLength": 10, "maxLength": 1000},
        },
        {
            "id": "newsletter",
            "name": "newsletter",
            "type": "checkbox",
            "label": "Subscribe to newsletter",
            "defaultValue": False,
        },
    ],
}

VALID_CONTACT = {
    "name": "Zhang",
    "email": "z@x.com",
    "subject": "product",
    "message": "Hello there, need help",
    "newsletter": "1",
}


def conditional_form(**b_overrides) -> FormMetadata:
    """Field b is shown (and required) only when a equals "x"."""
    b = {
        "id": "b",
        "name": "b",
        "type": "text",
        "required": True,
        "condition": {"fieldId": "a", "operator": "equals", "value": "x"},
    }
    b.update(b_overrides)
    return FormMetadata.model_validate({
        "version": "1.0.0",
        "fields": [{"id": "a", "name": "a", "type": "text"}, b],
    })


@pytest.fixture
def contact_form() -> FormMetadata:
    return FormMetadata.model_validate(copy.deepcopy(CONTACT_FORM))


@pytest.fixture
def valid_contact() -> dict:
    return dict(VALID_CONTACT)


@pytest.fixture
def compiler() -> SchemaCompiler:
    return SchemaCompiler(enable_cache=True, cache_max_size=10, locale="en-US")
