"""Input validation result model."""

from pydantic import BaseModel, model_validator


class ValidationResult(BaseModel):
    """Outcome of validating untrusted user text."""

    is_valid: bool
    sanitized_content: str | None = None
    reason: str | None = None

    @model_validator(mode="after")
    def check_exclusive(self) -> "ValidationResult":
        if self.is_valid and self.reason is not None:
            raise ValueError("A valid result cannot carry a rejection reason")
        if not self.is_valid and self.sanitized_content is not None:
            raise ValueError("A rejected result cannot carry sanitized content")
        return self

    @classmethod
    def accepted(cls, sanitized_content: str) -> "ValidationResult":
        return cls(is_valid=True, sanitized_content=sanitized_content)

    @classmethod
    def rejected(cls, reason: str) -> "ValidationResult":
        return cls(is_valid=False, reason=reason)
