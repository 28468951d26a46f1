from typing import List

from pydantic import ValidationError


def format_violations(exc: ValidationError) -> List[str]:
    """Flatten a pydantic ValidationError into 'dotted.location: message' strings."""
    violations = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "(root)"
        violations.append(f"{location}: {error['msg']}")
    return violations
