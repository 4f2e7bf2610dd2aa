"""hrflow - approval workflow engine and onboarding gate for the HR platform."""

__version__ = "0.1.0"
