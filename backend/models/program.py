"""Program directory data models."""
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class ProgramRecord:
    """One entry from the program directory."""
    id: str
    name: str
    category: str = ""
    description: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    areas: List[str] = field(default_factory=list)
