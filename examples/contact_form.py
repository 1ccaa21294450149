#!/usr/bin/env python3
"""
Contact Form Example

Compiles a small contact form, validates a few payloads, exports the
JSON Schema and drives a runtime context through a submission.

Usage:
    python examples/contact_form.py
"""

import asyncio
import json
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from schema_forms import (
    FormMetadata,
    FormRuntimeContext,
    JsonSchemaBridge,
    JsonSchemaOptions,
    LayoutResolver,
    SchemaCompiler,
    SubmitResult,
    setup_tracing,
)

CONTACT_FORM = {
    "version": "1.0.0",
    "title": "Contact Us",
    "fields": [
        {
            "id": "name", "name": "name", "type": "text", "label": "Name", "required": True,
            "validation": {"minLength": 2, "maxLength": 50},
            "layout": {"span": 24, "md": {"span": 12}},
        },
        {
            "id": "email", "name": "email", "type": "email", "label": "Email", "required": True,
            "layout": {"span": 24, "md": {"span": 12}},
        },
        {
            "id": "topic", "name": "topic", "type": "select", "label": "Topic", "required": True,
            "options": [{"value": "support"}, {"value": "sales"}, {"value": "other"}],
        },
        {
            "id": "details", "name": "details", "type": "textarea", "label": "Details",
            "required": True, "validation": {"minLength": 10},
            "condition": {"fieldId": "topic", "operator": "equals", "value": "other"},
        },
        {
            "id": "newsletter", "name": "newsletter", "type": "checkbox",
            "label": "Subscribe to newsletter",
        },
    ],
}


async def save_submission(data: dict) -> SubmitResult:
    print(f"Saving submission: {data}")
    return SubmitResult(success=True, message="Thanks, we will be in touch")


async def main():
    setup_tracing(console=True, verbose="--verbose" in sys.argv)

    metadata = FormMetadata.model_validate(CONTACT_FORM)
    compiler = SchemaCompiler()
    schema = compiler.compile(metadata)

    print("=" * 60)
    print("Validation")
    print("=" * 60)
    for payload in (
        {"name": "Z", "email": "not-an-email", "topic": "support"},
        {"name": "Zhang", "email": "z@x.com", "topic": "other"},
        {"name": "Zhang", "email": "z@x.com", "topic": "sales", "details": "ignored"},
    ):
        result = compiler.validate(schema, payload)
        if result.success:
            print(f"OK    {result.data}")
        else:
            print(f"FAIL  {[(e.field_id, e.message) for e in result.errors]}")

    print("\n" + "=" * 60)
    print("JSON Schema")
    print("=" * 60)
    bridge = JsonSchemaBridge()
    document = bridge.to_json_schema(schema, JsonSchemaOptions(title="Contact Us"))
    print(json.dumps(document, indent=2, ensure_ascii=False))

    print("\n" + "=" * 60)
    print("Layout (md)")
    print("=" * 60)
    for row in LayoutResolver().resolve(metadata, "md").rows:
        print(" | ".join(row))

    print("\n" + "=" * 60)
    print("Runtime")
    print("=" * 60)
    context = FormRuntimeContext(metadata, on_submit=save_submission, compiler=compiler)
    context.update_field_value("name", "Zhang")
    context.update_field_value("email", "z@x.com")
    context.update_field_value("topic", "other")
    print(f"Visibility: {context.visibility}")
    first = await context.submit_form()
    print(f"First attempt: {first.message} {[e.field_id for e in first.errors]}")
    context.update_field_value("details", "Looking for a custom integration")
    second = await context.submit_form()
    print(f"Second attempt: {second.message}")
    print(f"Metrics: {compiler.get_performance_metrics()}")


if __name__ == "__main__":
    asyncio.run(main())
