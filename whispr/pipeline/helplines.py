from __future__ import annotations

from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class Helpline:
    name: str
    number: str
    description: str


HELPLINES: List[Helpline] = [
    Helpline("National Suicide Prevention Lifeline", "988", "For free and confidential support."),
    Helpline("Crisis Text Line", "Text HOME to 741741", "For free, 24/7 crisis counseling."),
    Helpline("The Trevor Project", "1-866-488-7386", "For LGBTQ youth."),
]
