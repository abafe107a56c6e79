"""Custom exceptions for the taxonomy engine."""


class TaxonomyEngineError(Exception):
    """Base taxonomy engine exception."""
    pass


class StoreError(TaxonomyEngineError):
    def __init__(self, message: str, status_code: int = 0, retryable: bool = True):
        self.status_code = status_code
        self.retryable = retryable
        super().__init__(message)


class PreconditionError(TaxonomyEngineError):
    """Propagation input cannot be processed (missing ids, campaign absent)."""

    def __init__(self, reason: str, message: str):
        self.reason = reason
        super().__init__(message)


class RegenerationError(TaxonomyEngineError):
    def __init__(self, entity_kind: str, entity_id: str, message: str):
        self.entity_kind = entity_kind
        self.entity_id = entity_id
        super().__init__(f"[{entity_kind} {entity_id}] {message}")


class PropagationError(TaxonomyEngineError):
    """The tree could not be read or written; nothing was committed."""
    pass


class CommitError(PropagationError):
    pass


class ConfigError(TaxonomyEngineError):
    pass


class TemplateSyntaxError(TaxonomyEngineError):
    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = errors or []
        super().__init__(message)
