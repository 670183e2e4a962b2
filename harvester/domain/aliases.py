"""First-token alias substitution for console input."""

from typing import Dict, Optional


class AliasResolver:
    def __init__(self, aliases: Optional[Dict[str, str]] = None):
        self._aliases: Dict[str, str] = {
            k.lower(): v for k, v in (aliases or {}).items()
        }

    def resolve(self, line: str) -> str:
        """Replace the first word of ``line`` when it names an alias."""
        head, _, rest = line.strip().partition(" ")
        expansion = self._aliases.get(head.lower())
        if expansion is None:
            return line
        return f"{expansion} {rest}".strip() if rest else expansion
