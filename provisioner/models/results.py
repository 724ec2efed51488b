"""
Result Models

Outcome of dry-run checks that report problems instead of raising.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


@dataclass
class ValidationResult:
    """Result of a dry-run check such as a trial role assumption."""

    subject: str
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    expires_at: Optional[datetime] = None
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def add_error(self, error: str) -> None:
        """Record a problem; any error makes the result invalid."""
        self.errors.append(error)
        self.is_valid = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "subject": self.subject,
            "valid": self.is_valid,
            "errors": list(self.errors),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "checked_at": self.checked_at.isoformat(),
        }

    def __repr__(self) -> str:
        return f"ValidationResult(subject={self.subject}, valid={self.is_valid}, errors={len(self.errors)})"
