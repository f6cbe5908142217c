"""Multi-step application wizard with a guarded, fallible submit.

A ``WizardDefinition`` describes the steps (titles, required fields,
optional custom validators), the draft defaults, and how to turn a
finished draft into a record. A ``Wizard`` is one open dialog over that
definition:

    open → set_field(...) → next() ... next() → [submit] → closed

Rules:
  - ``next()`` advances only when the current step validates; on the last
    step it submits instead of advancing.
  - ``back()`` never validates.
  - ``submit()`` is guarded by an in-flight flag. On success the record is
    appended through the injected callback, then the draft is reset and
    the wizard closes. On failure the draft is kept, the wizard stays open
    and ``submit_error`` is set; the user retries by hand.
  - ``cancel()`` / ``dispose()`` discard the draft; a submit still in
    flight at that point has its result ignored.

The wizard never sees the owning collection, only ``append``.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping

logger = logging.getLogger(__name__)

FieldValue = str | bool | list[str]
FieldErrors = dict[str, str]
StepValidator = Callable[[Mapping[str, Any]], FieldErrors]


class WizardOutcome(str, enum.Enum):
    ADVANCED = "advanced"
    INVALID = "invalid"
    SUBMITTED = "submitted"
    FAILED = "failed"
    BUSY = "busy"
    CLOSED = "closed"
    DISCARDED = "discarded"


def is_filled(value: Any) -> bool:
    """Required-field check: non-blank string, True, or non-empty list."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, set)):
        return len(value) > 0
    return True


@dataclass(frozen=True)
class WizardStep:
    title: str
    required: tuple[str, ...] = ()
    validator: StepValidator | None = None
    labels: Mapping[str, str] = field(default_factory=dict)

    def validate(self, fields: Mapping[str, Any]) -> FieldErrors:
        errors: FieldErrors = {}
        for name in self.required:
            if not is_filled(fields.get(name)):
                label = self.labels.get(name, name.replace("_", " ").capitalize())
                errors[name] = f"{label} is required"
        if self.validator is not None:
            for name, message in self.validator(fields).items():
                errors.setdefault(name, message)
        return errors


@dataclass(frozen=True)
class WizardDefinition:
    """Static description of a wizard.

    ``build_record`` receives a copy of the draft fields and returns the
    record to submit (typically still in its domain's initial status).
    ``finalize`` turns that into the submitted record, e.g. by assigning a
    reference number. Both run on every submit attempt.
    """
    name: str
    steps: tuple[WizardStep, ...]
    defaults: Mapping[str, FieldValue]
    build_record: Callable[[dict[str, Any]], Any]
    finalize: Callable[[Any], Any] | None = None

    @property
    def step_count(self) -> int:
        return len(self.steps)

    def initial_fields(self) -> dict[str, Any]:
        return {
            name: list(value) if isinstance(value, list) else value
            for name, value in self.defaults.items()
        }


@dataclass
class WizardDraft:
    step_index: int
    fields: dict[str, Any]

    @classmethod
    def fresh(cls, definition: WizardDefinition) -> "WizardDraft":
        return cls(step_index=0, fields=definition.initial_fields())


Submitter = Callable[[Any], Awaitable[Any]]


class Wizard:
    def __init__(
        self,
        definition: WizardDefinition,
        append: Callable[[Any], None],
        *,
        submitter: Submitter | None = None,
        on_close: Callable[[], None] | None = None,
    ):
        self.definition = definition
        self._append = append
        self._submitter = submitter
        self._on_close = on_close

        self.draft = WizardDraft.fresh(definition)
        self.errors: FieldErrors = {}
        self.submit_error: str | None = None
        self.in_flight = False
        self.is_open = False
        self.last_submitted: Any = None
        # Bumped on every open/close so a stale submit can detect it was abandoned
        self._generation = 0

    # ── Lifecycle ───────────────────────────────────────────

    def open(self) -> None:
        if self.is_open:
            return
        self._reset()
        self.is_open = True
        self._generation += 1

    def _reset(self) -> None:
        self.draft = WizardDraft.fresh(self.definition)
        self.errors = {}
        self.submit_error = None

    def _close(self) -> None:
        self._reset()
        self.in_flight = False
        self.is_open = False
        self._generation += 1
        if self._on_close is not None:
            self._on_close()

    def cancel(self) -> WizardOutcome:
        """Discard the draft and close. Never appends anything."""
        if self.in_flight:
            logger.info(f"Wizard '{self.definition.name}' cancelled with submit in flight")
        self._close()
        return WizardOutcome.DISCARDED

    dispose = cancel

    # ── Draft access ────────────────────────────────────────

    @property
    def step_index(self) -> int:
        return self.draft.step_index

    @property
    def fields(self) -> dict[str, Any]:
        return self.draft.fields

    @property
    def current_step(self) -> WizardStep:
        return self.definition.steps[self.draft.step_index]

    @property
    def is_last_step(self) -> bool:
        return self.draft.step_index == self.definition.step_count - 1

    def set_field(self, name: str, value: FieldValue) -> None:
        self.draft.fields[name] = value
        self.errors.pop(name, None)

    def update(self, **values: FieldValue) -> None:
        for name, value in values.items():
            self.set_field(name, value)

    def is_valid_for_step(self, index: int) -> bool:
        return not self.definition.steps[index].validate(self.draft.fields)

    # ── Transitions ─────────────────────────────────────────

    def _validate_current(self) -> bool:
        self.errors = self.current_step.validate(self.draft.fields)
        return not self.errors

    async def next(self) -> WizardOutcome:
        if not self.is_open:
            return WizardOutcome.CLOSED
        if self.in_flight:
            return WizardOutcome.BUSY
        if not self._validate_current():
            return WizardOutcome.INVALID
        if self.is_last_step:
            return await self.submit()
        self.draft.step_index += 1
        return WizardOutcome.ADVANCED

    def back(self) -> bool:
        if not self.is_open or self.in_flight or self.draft.step_index == 0:
            return False
        self.draft.step_index -= 1
        self.errors = {}
        return True

    async def submit(self) -> WizardOutcome:
        if not self.is_open:
            return WizardOutcome.CLOSED
        if self.in_flight:
            return WizardOutcome.BUSY

        # Every step must hold, not only the one on screen
        for index, step in enumerate(self.definition.steps):
            errors = step.validate(self.draft.fields)
            if errors:
                self.draft.step_index = index
                self.errors = errors
                return WizardOutcome.INVALID

        generation = self._generation
        self.in_flight = True
        self.submit_error = None
        try:
            record = self.definition.build_record(dict(self.draft.fields))
            if self.definition.finalize is not None:
                record = self.definition.finalize(record)
            if self._submitter is not None:
                record = await self._submitter(record)
        except Exception as exc:
            if generation != self._generation:
                return WizardOutcome.DISCARDED
            self.submit_error = str(exc) or exc.__class__.__name__
            logger.warning(
                f"Submit failed for wizard '{self.definition.name}': {self.submit_error}",
                extra={"wizard": self.definition.name},
            )
            return WizardOutcome.FAILED
        finally:
            if generation == self._generation:
                self.in_flight = False

        if generation != self._generation:
            logger.info(f"Discarding result of abandoned '{self.definition.name}' submit")
            return WizardOutcome.DISCARDED

        self._append(record)
        self.last_submitted = record
        self._close()
        return WizardOutcome.SUBMITTED
