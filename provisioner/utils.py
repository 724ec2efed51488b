"""
Utility functions for the provisioner
"""

import uuid
from typing import Optional

from provisioner.exceptions import ProvisionerError


def new_correlation_id() -> str:
    """Generate a request correlation id."""
    return f"req-{uuid.uuid4().hex[:16]}"


def with_correlation(
    error: ProvisionerError, correlation_id: Optional[str]
) -> ProvisionerError:
    """Attach a correlation id to an error that does not carry one yet."""
    if error.correlation_id is None:
        error.correlation_id = correlation_id
    return error
