"""Client-side quote wizard: options index, state machine and HTTP transport."""

from .client import StorefrontClient, SubmissionError
from .options import (
    ColourOption,
    CombinationIndex,
    MaterialOption,
    ProcessOption,
    WizardOptions,
)
from .state import (
    CompletedQuote,
    CompletedQuoteItem,
    FilePreference,
    QuoteWizard,
    WizardFile,
    WizardStep,
)

__all__ = [
    "ColourOption",
    "CombinationIndex",
    "CompletedQuote",
    "CompletedQuoteItem",
    "FilePreference",
    "MaterialOption",
    "ProcessOption",
    "QuoteWizard",
    "StorefrontClient",
    "SubmissionError",
    "WizardFile",
    "WizardOptions",
    "WizardStep",
]
