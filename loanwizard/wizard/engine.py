"""Application wizard: orchestrates one applicant's five-step loan application.

Owns the draft (through the field registry), the per-step validation
states, the step FSM, the camera session and the schema resolver. All
network and camera waits are awaited on the caller's event loop; nothing
blocks it.

Usage:
    async with ApplicationWizard(api, provider, seed) as wizard:
        wizard.set_field(DraftSection.PERSONAL_INFO, "full_name", "Asha Rao")
        ...
        if await wizard.next_step():
            ...
        outcome = await wizard.submit()
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from loanwizard.api.client import ApiError, LoanApi
from loanwizard.capture.provider import CaptureConstraints, CaptureDeviceError, CaptureProvider
from loanwizard.capture.session import CaptureSession
from loanwizard.config import CaptureSettings, settings
from loanwizard.events import emit
from loanwizard.forms.resolver import FormSchema, SchemaResolver, filter_loans_by_category, find_loan, selection_key
from loanwizard.models.enums import (
    AddressKind,
    DocumentCategory,
    DraftSection,
    SubmissionStatus,
    WizardAction,
    WizardStep,
)
from loanwizard.reconciliation.engine import reconcile
from loanwizard.schemas.draft import ApplicationDraft, UploadedFile
from loanwizard.schemas.events import EventType, SystemEvent
from loanwizard.schemas.forms import Category, LoanProduct
from loanwizard.schemas.seed import DraftSeed
from loanwizard.schemas.submission import SubmissionOutcome
from loanwizard.seed import build_draft
from loanwizard.submission.assembler import SubmissionPrecheckError, assemble_submission
from loanwizard.wizard.fsm import WizardFSM
from loanwizard.wizard.registry import SELFIE_KEY, FieldRegistry, address_key
from loanwizard.wizard.states import GATED_ACTIONS, STEP_TITLES
from loanwizard.wizard.validation import ValidationEngine, ValidationState

logger = logging.getLogger(__name__)

T = TypeVar("T")

STEP_INCOMPLETE_MESSAGE = "Please fill all required fields before proceeding"
SUBMIT_FAILED_MESSAGE = "Failed to submit application"
SUBMIT_SUCCESS_MESSAGE = "Application submitted successfully!"

_ADDRESS_FIELDS = ("street", "city", "state", "pincode")


class WizardClosedError(RuntimeError):
    """Raised when a closed or submitted wizard is used."""

    user_message = "This application is no longer active."


class ApplicationWizard:
    """Single-use wizard instance; discard after submission or close."""

    def __init__(
        self,
        api: LoanApi,
        capture_provider: CaptureProvider,
        seed: DraftSeed | None = None,
        *,
        capture_settings: CaptureSettings | None = None,
        default_country: str | None = None,
        wizard_id: uuid.UUID | None = None,
    ) -> None:
        self.id = wizard_id or uuid.uuid4()
        self._api = api
        self._country = default_country or settings.form.default_country
        self.registry = FieldRegistry(build_draft(seed, self._country))
        self.validation = ValidationEngine()
        self.fsm = WizardFSM(self.id)
        self.resolver = SchemaResolver(api, self.id)

        capture_cfg = capture_settings or settings.capture
        self.capture = CaptureSession(
            capture_provider,
            CaptureConstraints(
                ideal_width=capture_cfg.capture_ideal_width,
                ideal_height=capture_cfg.capture_ideal_height,
            ),
            acquire_timeout=capture_cfg.camera_acquire_timeout,
            jpeg_quality=capture_cfg.selfie_jpeg_quality,
            filename_prefix=capture_cfg.selfie_filename_prefix,
        )

        self.categories: list[Category] = []
        self.loans: list[LoanProduct] = []
        self.selected_loan: LoanProduct | None = None
        self._requested_loan_id = seed.loan_id if seed else None
        self._selection_key: tuple[object, ...] | None = None
        self._submitting = False
        self._closed = False

    # ── State ────────────────────────────────────────────────────────

    @property
    def draft(self) -> ApplicationDraft:
        return self.registry.draft

    @property
    def schema(self) -> FormSchema:
        return self.registry.schema

    @property
    def step(self) -> WizardStep:
        return self.fsm.current_step

    @property
    def step_title(self) -> str:
        return STEP_TITLES.get(self.fsm.current_step, "")

    @property
    def is_loading_fields(self) -> bool:
        return self.resolver.is_loading

    @property
    def is_submitting(self) -> bool:
        return self._submitting

    @property
    def is_closed(self) -> bool:
        return self._closed or self.fsm.is_terminal

    def validation_state(self, step: WizardStep | None = None) -> ValidationState:
        return self.validation.state(step or self.fsm.current_step)

    def step_satisfied(self, step: WizardStep | None = None) -> bool:
        """Whether forward navigation from ``step`` (default: current) is enabled."""
        return self.validation.is_step_satisfied(step or self.fsm.current_step, self.schema)

    # ── Lifecycle ────────────────────────────────────────────────────

    async def start(self) -> None:
        """Load the catalog and resolve the schema of a pre-selected loan."""
        self._ensure_open()
        await emit(SystemEvent(
            event_type=EventType.WIZARD_STARTED,
            wizard_id=self.id,
            data={"loan_id": self._requested_loan_id},
            source_module="wizard.engine",
        ))
        await self.load_catalog()

    async def close(self) -> None:
        """Teardown: release the camera, drop pending work and discard the draft."""
        if self._closed:
            return
        self._closed = True
        self.resolver.invalidate()
        await self._cancel_capture("teardown")
        self._discard_draft()
        logger.info("Wizard %s closed at step %s", self.id, self.fsm.current_step.name)
        await emit(SystemEvent(
            event_type=EventType.WIZARD_CLOSED,
            wizard_id=self.id,
            data={"step": int(self.fsm.current_step)},
            source_module="wizard.engine",
        ))

    async def __aenter__(self) -> ApplicationWizard:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ── Catalog and schema ───────────────────────────────────────────

    async def load_catalog(self) -> None:
        """Fetch categories and loans; failures leave the lists empty."""
        self.categories = await self._fetch_or_empty(self._api.get_categories, "categories")
        self.loans = await self._fetch_or_empty(self._api.get_loans, "loans")

        if self.selected_loan is None and self._requested_loan_id:
            loan = find_loan(self.loans, self._requested_loan_id)
            if loan is None:
                logger.warning("Requested loan %s not found in catalog", self._requested_loan_id)
            else:
                self._set_selected_loan(loan)

        await self._refresh_schema()

    def loans_in_category(self, category_id: str | None) -> list[LoanProduct]:
        return filter_loans_by_category(self.loans, category_id)

    async def select_loan(self, loan: LoanProduct | str) -> FormSchema:
        """Select a loan (object or catalog id) and resolve its dynamic fields.

        Raises:
            KeyError: If an id is given that is not in the loaded catalog.
        """
        self._ensure_open()
        if isinstance(loan, str):
            found = find_loan(self.loans, loan)
            if found is None:
                msg = f"Unknown loan: {loan}"
                raise KeyError(msg)
            loan = found
        self._set_selected_loan(loan)
        await self._refresh_schema()
        return self.schema

    def _set_selected_loan(self, loan: LoanProduct) -> None:
        self.selected_loan = loan
        self.draft.loan_id = loan.id

    async def _refresh_schema(self) -> None:
        loan = self.selected_loan
        key = selection_key(loan, self.categories)
        if loan is None or key == self._selection_key:
            return
        self._selection_key = key

        schema = await self.resolver.resolve(loan, self.categories)
        if schema is None or self._closed:
            return
        dropped = self.registry.replace_schema(schema)
        self.validation.prune_dynamic(schema)
        if dropped:
            logger.info("Discarded %d dynamic values from the previous loan", len(dropped))

    async def _fetch_or_empty(self, fetch: Callable[[], Awaitable[list[T]]], what: str) -> list[T]:
        try:
            return await fetch()
        except ApiError as exc:
            logger.warning("Could not load %s: %s", what, exc)
            return []

    # ── Field mutation ───────────────────────────────────────────────

    def set_field(self, section: DraftSection, field: str, value: Any) -> str | None:
        """Set a canonical field; returns its real-time error, if any."""
        self._ensure_open()
        return self._validate_realtime(self.registry.set_field(section, field, value))

    def set_address_field(self, kind: AddressKind, field: str, value: Any) -> str | None:
        self._ensure_open()
        return self._validate_realtime(self.registry.set_address_field(kind, field, value))

    def copy_current_address(self) -> None:
        """"Same as current address"."""
        self._ensure_open()
        self.registry.copy_current_address()
        for field in _ADDRESS_FIELDS:
            self._validate_realtime(address_key(AddressKind.PERMANENT, field))

    def set_documents(self, category: DocumentCategory, files: list[UploadedFile]) -> None:
        self._ensure_open()
        self.registry.set_documents(category, files)

    def set_dynamic(self, name: str, value: Any) -> str | None:
        """Set an administrator-defined field; returns its real-time error, if any."""
        self._ensure_open()
        return self._validate_realtime(self.registry.set_dynamic(name, value))

    def _validate_realtime(self, key: str) -> str | None:
        step = self.validation.step_for_key(key, self.schema)
        if step != self.fsm.current_step:
            return None
        return self.validation.validate_field(key, self.draft, self.schema, self.selected_loan)

    # ── Navigation ───────────────────────────────────────────────────

    async def next_step(self) -> bool:
        """Validate the current step and advance; False if blocked."""
        self._ensure_open()
        return await self._attempt(WizardAction.NEXT)

    async def previous_step(self) -> bool:
        self._ensure_open()
        return await self._attempt(WizardAction.BACK)

    async def _attempt(self, action: WizardAction) -> bool:
        step = self.fsm.current_step
        target = self.fsm.target(action)
        if target is None:
            return False
        if action in GATED_ACTIONS and not await self._validate_step(step):
            return False
        if WizardStep.DOCUMENTS in (step, target):
            await self._cancel_capture(f"step {step.name} -> {target.name}")
        await self.fsm.transition(action)
        return True

    async def _validate_step(self, step: WizardStep) -> bool:
        if self.validation.validate_step(step, self.draft, self.schema, self.selected_loan):
            return True
        errors = self.validation.state(step).errors
        logger.info("Step %s blocked by %d errors: %s", step.name, len(errors), sorted(errors))
        await emit(SystemEvent(
            event_type=EventType.WIZARD_STEP_BLOCKED,
            wizard_id=self.id,
            data={"step": int(step), "fields": sorted(errors)},
            source_module="wizard.engine",
        ))
        return False

    # ── Camera ───────────────────────────────────────────────────────

    async def start_camera(self) -> bool:
        """Open the front camera for the selfie.

        Raises:
            CaptureDeviceError: Device unavailable; the wizard stays usable.
            RuntimeError: If not on the documents step.
        """
        self._ensure_open()
        if self.fsm.current_step != WizardStep.DOCUMENTS:
            msg = "The camera is only available on the documents step"
            raise RuntimeError(msg)
        try:
            started = await self.capture.start()
        except CaptureDeviceError as exc:
            logger.warning("Camera unavailable: %s", exc)
            await emit(SystemEvent(
                event_type=EventType.CAPTURE_FAILED,
                wizard_id=self.id,
                data={"error": str(exc)},
                source_module="wizard.engine",
            ))
            raise
        if started:
            await emit(SystemEvent(
                event_type=EventType.CAPTURE_STARTED,
                wizard_id=self.id,
                source_module="wizard.engine",
            ))
        return started

    async def capture_selfie(self) -> UploadedFile:
        """Take the picture, store it as the selfie and close the camera."""
        self._ensure_open()
        artifact = self.capture.capture()
        self.registry.set_selfie(artifact)
        self.validation.mark_validated(WizardStep.DOCUMENTS, SELFIE_KEY)
        await emit(SystemEvent(
            event_type=EventType.CAPTURE_COMPLETED,
            wizard_id=self.id,
            data={"filename": artifact.filename, "size": len(artifact.content)},
            source_module="wizard.engine",
        ))
        return artifact

    async def cancel_camera(self) -> bool:
        self._ensure_open()
        return await self._cancel_capture("user")

    async def remove_selfie(self) -> None:
        self._ensure_open()
        self.registry.set_selfie(None)
        self.validation.reset(WizardStep.DOCUMENTS, SELFIE_KEY)
        await emit(SystemEvent(
            event_type=EventType.SELFIE_REMOVED,
            wizard_id=self.id,
            source_module="wizard.engine",
        ))

    async def _cancel_capture(self, reason: str) -> bool:
        if not self.capture.cancel():
            return False
        await emit(SystemEvent(
            event_type=EventType.CAPTURE_CANCELLED,
            wizard_id=self.id,
            data={"reason": reason},
            source_module="wizard.engine",
        ))
        return True

    # ── Submission ───────────────────────────────────────────────────

    async def submit(self) -> SubmissionOutcome:
        """Validate, reconcile, precheck and send the application.

        The draft is kept on every failure so the applicant can retry.
        """
        self._ensure_open()
        if self._submitting:
            return SubmissionOutcome(status=SubmissionStatus.IN_FLIGHT, message="Submission already in progress")
        if not self.fsm.can_transition(WizardAction.SUBMIT):
            return SubmissionOutcome(
                status=SubmissionStatus.INVALID,
                message="Applications can only be submitted from the documents step",
            )

        self._submitting = True
        try:
            return await self._submit()
        finally:
            self._submitting = False

    async def _submit(self) -> SubmissionOutcome:
        if not await self._validate_step(WizardStep.DOCUMENTS):
            return SubmissionOutcome(status=SubmissionStatus.INVALID, message=STEP_INCOMPLETE_MESSAGE)

        reconciled = reconcile(self.draft, self.schema)
        try:
            payload = assemble_submission(reconciled, self.schema)
        except SubmissionPrecheckError as exc:
            logger.info("Submission precheck failed: %s", exc)
            await emit(SystemEvent(
                event_type=EventType.SUBMISSION_REJECTED,
                wizard_id=self.id,
                data={"reason": str(exc)},
                source_module="wizard.engine",
            ))
            return SubmissionOutcome(status=SubmissionStatus.PRECHECK_FAILED, message=exc.user_message)

        await emit(SystemEvent(
            event_type=EventType.SUBMISSION_STARTED,
            wizard_id=self.id,
            data={"loan_id": reconciled.loan_id, "file_parts": len(payload.files)},
            source_module="wizard.engine",
        ))

        try:
            response = await self._api.submit_application(payload)
        except ApiError as exc:
            logger.warning("Submission failed: %s", exc)
            return await self._submission_failed(exc.server_message or SUBMIT_FAILED_MESSAGE)

        if not response.success:
            return await self._submission_failed(response.message or SUBMIT_FAILED_MESSAGE)

        await self._cancel_capture("submitted")
        await self.fsm.transition(WizardAction.SUBMIT)
        self._discard_draft()
        logger.info("Application submitted (wizard=%s, loan=%s)", self.id, reconciled.loan_id)
        await emit(SystemEvent(
            event_type=EventType.SUBMISSION_COMPLETED,
            wizard_id=self.id,
            data={"loan_id": reconciled.loan_id},
            source_module="wizard.engine",
        ))
        return SubmissionOutcome(status=SubmissionStatus.SUBMITTED, message=SUBMIT_SUCCESS_MESSAGE, data=response.data)

    async def _submission_failed(self, message: str) -> SubmissionOutcome:
        await emit(SystemEvent(
            event_type=EventType.SUBMISSION_FAILED,
            wizard_id=self.id,
            data={"message": message},
            source_module="wizard.engine",
        ))
        return SubmissionOutcome(status=SubmissionStatus.FAILED, message=message)

    # ── Internals ────────────────────────────────────────────────────

    def _discard_draft(self) -> None:
        self.registry.draft = ApplicationDraft()
        self.validation = ValidationEngine()

    def _ensure_open(self) -> None:
        if self.is_closed:
            msg = f"Wizard {self.id} is closed"
            raise WizardClosedError(msg)
