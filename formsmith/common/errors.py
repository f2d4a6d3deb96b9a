"""Exception types shared across Formsmith components."""


class FormsmithError(Exception):
    """Base class for Formsmith errors."""
    pass


class VectorizationError(FormsmithError):
    """A vectorizer backend could not produce a vector."""
    pass


class RecordStoreError(FormsmithError):
    """The record store could not complete an operation."""
    pass


class FormGenerationError(FormsmithError):
    """The language model did not yield a usable form definition."""
    pass
