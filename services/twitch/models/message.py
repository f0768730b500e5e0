from dataclasses import dataclass
from typing import List, Optional, Tuple

Tag = Tuple[str, Optional[str]]


@dataclass
class IrcEvent:
    """
    Decoded Twitch IRC line.

    Tags keep the wire shape: a list of (key, value) pairs where value is
    None for a bare ``key`` and ``""`` for ``key=``. ``tags`` itself is None
    when the line carried no tag section at all.
    """

    command: str
    params: List[str]
    tags: Optional[List[Tag]] = None
    prefix: Optional[str] = None
    raw: str = ""

    def source_nickname(self) -> Optional[str]:
        """
        Nickname from a ``nick!user@host`` prefix.

        Bare prefixes that look like server names (contain a dot) resolve to
        None, as do events without a prefix.
        """
        if not self.prefix:
            return None

        for sep in ("!", "@"):
            if sep in self.prefix:
                return self.prefix.split(sep, 1)[0] or None

        if "." in self.prefix:
            return None
        return self.prefix
