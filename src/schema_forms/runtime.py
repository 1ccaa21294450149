"""
Form Runtime Context.

Holds the live state of one form instance: current values, validation
state and submission state. A rendering layer subscribes to changes and
calls the mutators; the context itself has no UI dependency.

Usage:
    context = FormRuntimeContext(metadata, on_submit=save_submission)
    context.update_field_value("email", "z@x.com")
    result = await context.submit_form()
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, Field

from schema_forms.compiler import SchemaCompiler
from schema_forms.errors import FormStateError
from schema_forms.layout import LayoutResolver
from schema_forms.models.field_definitions import Breakpoint, FormMetadata
from schema_forms.models.layout_plan import LayoutPlan
from schema_forms.models.validation_result import FieldError, ValidationResult

logger = logging.getLogger(__name__)


class SubmissionStatus(str, Enum):
    """idle -> submitting -> submitted, or back to idle on failure."""

    IDLE = "idle"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"


class SubmitResult(BaseModel):
    """Outcome reported by the submit collaborator."""

    success: bool = Field(..., description="Whether the submission was accepted")
    message: str | None = Field(default=None)
    data: dict[str, Any] | None = Field(default=None, description="Collaborator payload")
    errors: list[FieldError] = Field(default_factory=list, description="Validation errors")


class SubmissionRecord(BaseModel):
    """Record handed to the persistence collaborator."""

    form_id: str = Field(..., alias="formId")
    data: dict[str, Any]
    submitted_by: str | None = Field(default=None, alias="submittedBy")
    timestamp: datetime

    model_config = {"populate_by_name": True}


@dataclass
class ValidationState:
    is_valid: bool = True
    is_dirty: bool = False
    errors: dict[str, list[FieldError]] = field(default_factory=dict)
    touched: set[str] = field(default_factory=set)


@dataclass
class SubmissionState:
    status: SubmissionStatus = SubmissionStatus.IDLE
    submit_count: int = 0
    last_submit_time: datetime | None = None
    last_result: SubmitResult | None = None

    @property
    def is_submitting(self) -> bool:
        return self.status == SubmissionStatus.SUBMITTING

    @property
    def is_submitted(self) -> bool:
        return self.status == SubmissionStatus.SUBMITTED


SubmitHandler = Callable[[dict[str, Any]], Awaitable[SubmitResult | dict[str, Any]]]
Listener = Callable[["FormRuntimeContext"], None]


class FormRuntimeContext:
    """
    Live state of one form instance.

    Values are keyed by field name, like submitted payloads. Field-level
    operations take field ids.
    """

    def __init__(
        self,
        metadata: FormMetadata,
        on_submit: SubmitHandler | None = None,
        compiler: SchemaCompiler | None = None,
        initial_values: dict[str, Any] | None = None,
        layout_resolver: LayoutResolver | None = None,
    ):
        """
        Compile the form and set up its initial state.

        Raises:
            ConfigurationError: The metadata is invalid.
        """
        self.metadata = metadata
        self.compiler = compiler or SchemaCompiler()
        self.schema = self.compiler.compile(metadata)
        self.on_submit = on_submit
        self.layout_resolver = layout_resolver or LayoutResolver()

        self._defaults = self.compiler.get_defaults(metadata)
        self.values: dict[str, Any] = {**self._defaults, **(initial_values or {})}
        self.validation = ValidationState()
        self.submission = SubmissionState()

        self._generations: dict[str, int] = {}
        self._pending: dict[str, asyncio.Task] = {}
        self._listeners: list[Listener] = []
        self._submitted_data: dict[str, Any] | None = None

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_field(self, field_id: str):
        compiled = self.schema.field_by_id(field_id)
        if compiled is None:
            raise KeyError(f"Unknown field id '{field_id}'")
        return compiled

    def _set_errors(self, field_id: str, errors: list[FieldError]) -> None:
        if errors:
            self.validation.errors[field_id] = errors
        else:
            self.validation.errors.pop(field_id, None)
        self.validation.is_valid = not self.validation.errors

    def _bump(self, field_id: str) -> int:
        generation = self._generations.get(field_id, 0) + 1
        self._generations[field_id] = generation
        return generation

    def _should_validate(self, field_id: str) -> bool:
        mode = self.metadata.validation_mode
        if mode == "onBlur":
            return field_id in self.validation.touched
        if mode == "onSubmit":
            return self.submission.submit_count > 0
        return True

    @property
    def is_validating(self) -> bool:
        return bool(self._pending)

    @property
    def visibility(self) -> dict[str, bool]:
        """Current visibility per field id."""
        return self.compiler.compute_visibility(self.metadata, self.values)

    def get_field_errors(self, field_id: str) -> list[FieldError]:
        return list(self.validation.errors.get(field_id, []))

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def update_field_value(self, field_id: str, value: Any) -> asyncio.Task | None:
        """
        Set a field value and re-evaluate what depends on it.

        The field's own synchronous rule runs immediately, as do the
        conditions of every field that references it. Async rules are
        scheduled on the running loop and the task is returned; a result
        arriving after a newer edit of the same field is dropped.

        Raises:
            KeyError: Unknown field id.
            FormStateError: The field has async rules but no event loop is running.
        """
        compiled = self._require_field(field_id)
        # Raises before any state changes
        loop = self._running_loop(field_id) if compiled.rule.async_rules else None

        self.values[compiled.name] = value
        self.validation.is_dirty = True
        generation = self._bump(field_id)
        self._pending.pop(field_id, None)

        task = None
        if self._should_validate(field_id):
            outcome = self.compiler.check_field(self.schema, field_id, self.values)
            self._set_errors(field_id, list(outcome.errors))
            if outcome.ok and not outcome.empty and loop is not None:
                task = loop.create_task(self._run_async(field_id, generation, outcome.value))
                self._pending[field_id] = task

        self._refresh_dependents(field_id)
        self._notify()
        return task

    def _refresh_dependents(self, field_id: str) -> None:
        visibility = self.visibility
        for dependent_id in self.schema.dependents_of(field_id):
            if not visibility.get(dependent_id, True):
                # Hidden fields carry no errors and no pending async work
                self._bump(dependent_id)
                self._pending.pop(dependent_id, None)
                self._set_errors(dependent_id, [])
            elif dependent_id in self.validation.touched or dependent_id in self.validation.errors:
                outcome = self.compiler.check_field(self.schema, dependent_id, self.values)
                self._set_errors(dependent_id, list(outcome.errors))

    @staticmethod
    def _running_loop(field_id: str) -> asyncio.AbstractEventLoop:
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            raise FormStateError(
                f"Field '{field_id}' has async rules; update it from a running event loop"
            ) from None

    async def _run_async(self, field_id: str, generation: int, value: Any) -> list[FieldError] | None:
        errors = await self.compiler.check_field_async(self.schema, field_id, value)
        if self._generations.get(field_id) != generation:
            logger.debug(f"Dropped stale async validation result for field '{field_id}'")
            return None
        self._pending.pop(field_id, None)
        self._set_errors(field_id, errors)
        self._notify()
        return errors

    def touch_field(self, field_id: str) -> list[FieldError]:
        """Mark a field as touched (blur) and validate it synchronously."""
        self._require_field(field_id)
        self.validation.touched.add(field_id)
        outcome = self.compiler.check_field(self.schema, field_id, self.values)
        self._set_errors(field_id, list(outcome.errors))
        self._notify()
        return list(outcome.errors)

    async def validate_form(self) -> ValidationResult:
        """
        Validate the whole form, async rules included.

        Pending per-field async validations are superseded by this pass. A
        field edited while the pass is running keeps the errors of its own
        newer validation.
        """
        generations = {f.field_id: self._bump(f.field_id) for f in self.schema.fields}
        self._pending.clear()

        result = await self.compiler.validate_async(self.schema, dict(self.values))
        errors = result.group_errors_by_field()
        for field_id, generation in generations.items():
            if self._generations.get(field_id) != generation:
                logger.debug(f"Kept newer validation state for field '{field_id}'")
                continue
            self._set_errors(field_id, errors.get(field_id, []))
            self.validation.touched.add(field_id)
        self._notify()
        return result

    async def submit_form(self) -> SubmitResult:
        """
        Validate, then hand the data to the submit collaborator once.

        On validation failure the collaborator is not called and the
        state returns to idle. A collaborator exception is reported as an
        unsuccessful SubmitResult.

        Raises:
            FormStateError: A submission is in progress or already succeeded.
        """
        if self.submission.is_submitting:
            raise FormStateError("Form is already being submitted")
        if self.submission.is_submitted:
            raise FormStateError("Form was already submitted; reset it first")

        self.submission.status = SubmissionStatus.SUBMITTING
        self.submission.submit_count += 1
        self._notify()

        try:
            validation = await self.validate_form()
            if not validation.success:
                submit_result = SubmitResult(
                    success=False, message="Validation failed", errors=validation.errors
                )
            else:
                submit_result = await self._call_collaborator(validation.data or {})
                if submit_result.success:
                    self._submitted_data = validation.data or {}
                    self.submission.status = SubmissionStatus.SUBMITTED
                    self.submission.last_submit_time = datetime.now(timezone.utc)
            self.submission.last_result = submit_result
            return submit_result
        finally:
            if self.submission.status == SubmissionStatus.SUBMITTING:
                self.submission.status = SubmissionStatus.IDLE
            self._notify()

    async def _call_collaborator(self, data: dict[str, Any]) -> SubmitResult:
        if self.on_submit is None:
            return SubmitResult(success=True, data=data)
        try:
            outcome = await self.on_submit(data)
        except Exception as exc:
            logger.exception("Submit collaborator failed")
            return SubmitResult(success=False, message=str(exc) or type(exc).__name__)
        if isinstance(outcome, SubmitResult):
            return outcome
        return SubmitResult.model_validate(outcome)

    def reset_form(self, values: dict[str, Any] | None = None) -> None:
        """Return to the initial values and to the idle state."""
        for field_id in list(self._generations):
            self._bump(field_id)
        self._pending.clear()
        self.values = {**self._defaults, **(values or {})}
        self.validation = ValidationState()
        self.submission = SubmissionState()
        self._submitted_data = None
        self._notify()

    # ------------------------------------------------------------------
    # Rendering and persistence
    # ------------------------------------------------------------------

    def layout(self, bp: Breakpoint | str) -> LayoutPlan:
        """Layout of the currently visible fields."""
        visibility = self.visibility
        visible = [f for f in self.metadata.fields if visibility.get(f.id, True)]
        return self.layout_resolver.resolve(self.metadata.model_copy(update={"fields": visible}), bp)

    def build_submission(self, form_id: str, submitted_by: str | None = None) -> SubmissionRecord:
        """
        Record of the last successful submission for the persistence collaborator.

        Raises:
            FormStateError: The form has not been submitted successfully.
        """
        if self._submitted_data is None or self.submission.last_submit_time is None:
            raise FormStateError("Form has no successful submission")
        return SubmissionRecord(
            form_id=form_id,
            data=self._submitted_data,
            submitted_by=submitted_by,
            timestamp=self.submission.last_submit_time,
        )
