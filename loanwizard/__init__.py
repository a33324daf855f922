"""LoanWizard: dynamic multi-step loan application engine."""

from loanwizard.main import configure_logging, create_wizard
from loanwizard.wizard.engine import ApplicationWizard, WizardClosedError

__all__ = ["ApplicationWizard", "WizardClosedError", "configure_logging", "create_wizard"]
