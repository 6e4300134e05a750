"""State machine behind the three-step quote wizard.

Upload -> Preferences -> Review, then a single submission that uploads
each model, creates the quote and leaves a summary behind. Every method
except :meth:`QuoteWizard.submit` is a synchronous state transition.
"""

from __future__ import annotations

import enum
import os
import re
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

from .. import logger
from ..schemas.quote_schemas import NOTES_MAX_LENGTH
from ..services.pricing_service import normalize_quantity
from .client import SubmissionError
from .options import WizardOptions, normalize_id

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

GENERIC_FAILURE = "Something went wrong. Please try again."


class WizardStep(enum.IntEnum):
    UPLOAD = 0
    PREFERENCES = 1
    REVIEW = 2


TOTAL_STEPS = len(WizardStep)


class QuoteTransport(Protocol):
    def upload_model(self, filename: str, content: bytes) -> Optional[Any]: ...

    def create_quote(self, body: Dict[str, Any]) -> Dict[str, Any]: ...


@dataclass(frozen=True)
class WizardFile:
    """A model file picked by the customer."""

    filename: str
    content: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def fingerprint(self) -> Tuple[str, int]:
        return self.filename, self.size

    @classmethod
    def from_path(cls, path: str) -> "WizardFile":
        with open(path, "rb") as handle:
            return cls(filename=os.path.basename(path), content=handle.read())


@dataclass
class SelectedFile:
    id: str
    file: WizardFile


@dataclass
class FilePreference:
    material: Optional[str] = None
    colour: Optional[str] = None
    process: Optional[str] = None
    quantity: int = 1

    def is_complete(self) -> bool:
        return bool(self.material and self.colour and self.process and self.quantity > 0)


@dataclass
class BulkPreference:
    material: Optional[str] = None
    colour: Optional[str] = None
    process: Optional[str] = None

    def is_complete(self) -> bool:
        return bool(self.material and self.colour and self.process)


@dataclass
class CompletedQuoteItem:
    model_name: str
    size: int
    material_name: str
    colour_name: str
    process_name: str
    colour_swatches: List[str]
    quantity: int


@dataclass
class CompletedQuote:
    id: str
    items: List[CompletedQuoteItem]
    email: Optional[str] = None
    notes: Optional[str] = None


def build_completed_quote_summary(
    files: Iterable[SelectedFile],
    preferences: Dict[str, FilePreference],
    options: WizardOptions,
) -> List[CompletedQuoteItem]:
    summary = []
    for selected in files:
        prefs = preferences.get(selected.id) or FilePreference()
        material = options.material_map.get(prefs.material) if prefs.material else None
        colour = options.colour_map.get(prefs.colour) if prefs.colour else None
        process = options.process_map.get(prefs.process) if prefs.process else None
        summary.append(CompletedQuoteItem(
            model_name=selected.file.filename,
            size=selected.file.size,
            material_name=material.name if material else "Selected material",
            colour_name=colour.name if colour else "Selected colour",
            process_name=process.name if process else "Selected process",
            colour_swatches=list(colour.swatches) if colour else [],
            quantity=normalize_quantity(prefs.quantity),
        ))
    return summary


class QuoteWizard:
    """Collects models, preferences and contact details for one quote.

    Args:
        options: Catalog options offered in the preference step.
        requires_email: True for guests, who must leave a valid contact email.
        initial_email: Pre-filled contact email (the logged-in user's email).
    """

    def __init__(
        self,
        options: WizardOptions,
        requires_email: bool = True,
        initial_email: Optional[str] = None,
    ) -> None:
        self.options = options
        self.requires_email = requires_email
        self.contact_email = initial_email or ""
        self.completed_quote: Optional[CompletedQuote] = None
        self.is_submitting = False
        self.reset()

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def normalized_email(self) -> str:
        return self.contact_email.strip()

    @property
    def email_is_valid(self) -> bool:
        if not self.requires_email:
            return True
        return bool(self.normalized_email) and bool(EMAIL_REGEX.match(self.normalized_email))

    @property
    def email_has_error(self) -> bool:
        """True once something was typed that is not an email address."""
        if not self.requires_email or not self.contact_email:
            return False
        return not EMAIL_REGEX.match(self.normalized_email)

    @property
    def all_files_configured(self) -> bool:
        if not self.files:
            return False
        return all(
            selected.id in self.file_preferences and self.file_preferences[selected.id].is_complete()
            for selected in self.files
        )

    @property
    def can_move_forward(self) -> bool:
        if self.active_step == WizardStep.UPLOAD:
            return len(self.files) > 0
        if self.active_step == WizardStep.PREFERENCES:
            return self.all_files_configured
        return False

    @property
    def can_submit(self) -> bool:
        if self.is_submitting or (self.requires_email and not self.email_is_valid):
            return False
        return self.all_files_configured

    @property
    def is_completed(self) -> bool:
        return self.completed_quote is not None

    def _gate_open(self, step: WizardStep) -> bool:
        if step == WizardStep.UPLOAD:
            return len(self.files) > 0
        if step == WizardStep.PREFERENCES:
            return self.all_files_configured
        return False

    # ------------------------------------------------------------------
    # Upload step
    # ------------------------------------------------------------------

    def add_files(self, incoming: Iterable[WizardFile]) -> int:
        """Add files, silently dropping any whose (name, size) is already selected.

        Returns the number of files actually added.
        """
        fingerprints = {selected.file.fingerprint for selected in self.files}
        added = 0
        for wizard_file in incoming:
            if wizard_file.fingerprint in fingerprints:
                continue
            fingerprints.add(wizard_file.fingerprint)
            file_id = str(uuid.uuid4())
            self.files.append(SelectedFile(id=file_id, file=wizard_file))
            self.file_preferences.setdefault(file_id, FilePreference())
            added += 1
        return added

    def remove_file(self, file_id: str) -> None:
        self.files = [selected for selected in self.files if selected.id != file_id]
        self.file_preferences.pop(file_id, None)

    # ------------------------------------------------------------------
    # Preferences step
    # ------------------------------------------------------------------

    def preference_for(self, file_id: str) -> FilePreference:
        return self.file_preferences.get(file_id) or FilePreference()

    def available_colours(self, material_id: Optional[str]):
        return self.options.available_colours(material_id)

    def update_file_preference(self, file_id: str, **updates: Any) -> FilePreference:
        """Apply ``material``, ``colour``, ``process`` and/or ``quantity``.

        A new material clears the colour. A colour must be reachable from the
        file's material through an active filament. Nothing is stored unless
        every update is accepted.

        Raises:
            KeyError: ``file_id`` is not a selected file.
            ValueError: the colour is not available for the material.
        """
        unknown = set(updates) - {"material", "colour", "process", "quantity"}
        if unknown:
            raise TypeError(f"Unknown preference field(s): {', '.join(sorted(unknown))}")

        if not any(selected.id == file_id for selected in self.files):
            raise KeyError(file_id)

        prefs = replace(self.file_preferences.get(file_id) or FilePreference())

        if "material" in updates:
            material = self._option_value(updates["material"])
            if material != prefs.material:
                prefs.material = material
                prefs.colour = None

        if "colour" in updates:
            colour = self._option_value(updates["colour"])
            if colour is not None and not self.options.index.allows(prefs.material, colour):
                raise ValueError("That colour is not available for the selected material.")
            prefs.colour = colour

        if "process" in updates:
            prefs.process = self._option_value(updates["process"])

        if "quantity" in updates:
            prefs.quantity = normalize_quantity(updates["quantity"])

        self.file_preferences[file_id] = prefs
        return prefs

    def set_bulk_selection(self, field_name: str, value: Optional[str]) -> None:
        if field_name not in ("material", "colour", "process"):
            raise TypeError(f"Unknown bulk field: {field_name}")
        value = self._option_value(value)
        if field_name == "material":
            self.bulk_selection.material = value
            self.bulk_selection.colour = None
        else:
            setattr(self.bulk_selection, field_name, value)

    def apply_bulk_selections(self) -> bool:
        """Copy the bulk material/colour/process onto every file (not quantity)."""
        bulk = self.bulk_selection
        if not bulk.is_complete():
            self.error = "Select material, colour, and process before applying to all models."
            return False
        if not self.options.index.allows(bulk.material, bulk.colour):
            self.error = "That colour is not available for the selected material."
            return False

        for selected in self.files:
            self.update_file_preference(
                selected.id,
                material=bulk.material,
                colour=bulk.colour,
                process=bulk.process,
            )
        self.error = None
        return True

    @staticmethod
    def _option_value(value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        return normalize_id(value)

    # ------------------------------------------------------------------
    # Review step
    # ------------------------------------------------------------------

    def set_contact_email(self, value: str) -> None:
        self.contact_email = value or ""

    def set_notes(self, value: str) -> None:
        self.notes = (value or "")[:NOTES_MAX_LENGTH]

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def go_to_step(self, step: int) -> bool:
        """Move to ``step`` (clamped). Moving forward needs every gate on the way."""
        if self.is_submitting:
            return False

        target = WizardStep(min(max(int(step), 0), TOTAL_STEPS - 1))
        for gate in range(self.active_step, target):
            if not self._gate_open(WizardStep(gate)):
                return False

        self.active_step = target
        self.error = None
        return True

    def next_step(self) -> bool:
        if self.active_step == WizardStep.REVIEW:
            return False
        return self.go_to_step(self.active_step + 1)

    def previous_step(self) -> bool:
        return self.go_to_step(self.active_step - 1)

    def reset(self) -> None:
        """Clear files, preferences, notes and step. The contact email is kept."""
        self.active_step = WizardStep.UPLOAD
        self.files: List[SelectedFile] = []
        self.file_preferences: Dict[str, FilePreference] = {}
        self.bulk_selection = BulkPreference()
        self.notes = ""
        self.error: Optional[str] = None
        self.is_submitting = False

    def start_new_quote(self) -> None:
        self.completed_quote = None
        self.reset()

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def _precheck(self) -> Optional[str]:
        if not self.files:
            return "Add models before submitting."
        if not self.all_files_configured:
            return "Select a material, colour, process, and quantity for each model before submitting."
        if self.requires_email and not self.email_is_valid:
            return "Please provide a valid email address so we can reach you about this quote."
        return None

    def build_items_payload(self, model_ids: List[Any]) -> List[Dict[str, Any]]:
        items = []
        for selected, model_id in zip(self.files, model_ids):
            prefs = self.file_preferences.get(selected.id)
            if prefs is None or not prefs.is_complete():
                raise SubmissionError("Select a material, colour, process, and quantity for every model.")
            try:
                material, colour, process = int(prefs.material), int(prefs.colour), int(prefs.process)
            except (TypeError, ValueError):
                raise SubmissionError(
                    "Select valid material, colour, and process options before submitting."
                ) from None
            items.append({
                "model": model_id,
                "material": material,
                "colour": colour,
                "process": process,
                "quantity": normalize_quantity(prefs.quantity),
            })
        return items

    def submit(self, transport: QuoteTransport) -> Optional[CompletedQuote]:
        """Upload every model, then create the quote.

        Returns the completed quote summary, or None when the submission did
        not go through (``error`` then holds the first failure). Uploads that
        already succeeded are not rolled back. Calls made while a submission
        is in progress are ignored.
        """
        if self.is_submitting:
            return None

        problem = self._precheck()
        if problem:
            self.error = problem
            return None

        trimmed_notes = self.notes.strip()
        submission_email = self.normalized_email.lower() if self.normalized_email else None
        display_email = self.normalized_email or None

        self.is_submitting = True
        self.error = None

        try:
            model_ids = []
            for selected in self.files:
                model_id = transport.upload_model(selected.file.filename, selected.file.content)
                if not model_id:
                    raise SubmissionError("We could not confirm the uploaded model. Please try again.")
                model_ids.append(model_id)

            body: Dict[str, Any] = {"items": self.build_items_payload(model_ids)}
            if self.requires_email and submission_email:
                body["customerEmail"] = submission_email
            if trimmed_notes:
                body["notes"] = trimmed_notes

            doc = transport.create_quote(body)
            quote_id = doc.get("id") if doc else None
            if not quote_id:
                raise SubmissionError("The quote was created but we could not confirm its ID.")

            completed = CompletedQuote(
                id=normalize_id(quote_id),
                items=build_completed_quote_summary(self.files, self.file_preferences, self.options),
                email=display_email,
                notes=trimmed_notes or None,
            )
        except SubmissionError as exc:
            logger.warning(f"Quote submission failed: {exc}")
            self.error = str(exc) or GENERIC_FAILURE
            return None
        except Exception as exc:
            logger.error(f"Unexpected error during quote submission: {exc!r}")
            self.error = GENERIC_FAILURE
            return None
        finally:
            self.is_submitting = False

        logger.info(f"Quote {completed.id} submitted with {len(completed.items)} item(s)")
        self.completed_quote = completed
        self.reset()
        return completed
