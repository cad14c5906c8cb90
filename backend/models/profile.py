"""Privacy-respecting user profile context."""
import re
from dataclasses import dataclass, field
from typing import List, Optional

# "18-25", "65+"; anything finer grained is an exact age and is rejected
AGE_RANGE_PATTERN = re.compile(r"^\d{1,3}(-\d{1,3}|\+)$")
QUALIFICATION_PATTERN = re.compile(r"^[a-z][a-z-]*$")


@dataclass(frozen=True)
class ProfileContext:
    """
    Abstracted user attributes shared by app users who opted in.

    Never holds raw PII: age is a bucket, location is city or county level,
    and qualifications are category tags such as "student" or "caregiver".
    """
    county: Optional[str] = None
    city: Optional[str] = None
    age_range: Optional[str] = None
    is_military_or_veteran: bool = False
    qualifications: List[str] = field(default_factory=list)

    def __post_init__(self):
        if self.age_range and not AGE_RANGE_PATTERN.match(self.age_range):
            raise ValueError(f"Age must be a bucketed range, got: {self.age_range!r}")
        for tag in self.qualifications:
            if not QUALIFICATION_PATTERN.match(tag):
                raise ValueError(f"Qualification must be a category tag, got: {tag!r}")

    def to_prompt_context(self) -> str:
        """Summarize the profile for the persona prompt; empty when nothing is known."""
        parts = []

        if self.city:
            parts.append(f"located in {self.city}")
        elif self.county:
            parts.append(f"in {self.county} County")

        if self.age_range:
            parts.append(f"age {self.age_range}")

        if self.is_military_or_veteran:
            parts.append("veteran or military")

        if self.qualifications:
            parts.append(", ".join(q.replace("-", " ") for q in self.qualifications))

        if not parts:
            return ""

        return (
            f"USER CONTEXT: The user is {'; '.join(parts)}. "
            "Use this to prioritize relevant programs but still ask clarifying questions as needed."
        )
