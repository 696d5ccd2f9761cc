"""
Reply-line parsing
==================

Splits one server line into its fields so checks can compare them
directly instead of running regular expressions over the raw text:

    [:prefix] COMMAND param param ... [:trailing free text]

The parse is anchored at the start of the line: a line that opens with
whitespace, or with a prefix that is not followed by a command, does not
parse.  Runs of spaces between fields are tolerated.

Numerics:
  RPL_WHOREPLY   = 352   RPL_ENDOFWHO    = 315
  RPL_LISTSTART  = 321   RPL_LIST        = 322   RPL_LISTEND    = 323
  RPL_NAMREPLY   = 353   RPL_ENDOFNAMES  = 366
  RPL_MOTDSTART  = 375   RPL_MOTD        = 372   RPL_ENDOFMOTD  = 376
  ERR_NICKNAMEINUSE = 433
"""

from typing import NamedTuple, Optional, Tuple

RPL_ENDOFWHO      = "315"
RPL_LISTSTART     = "321"
RPL_LIST          = "322"
RPL_LISTEND       = "323"
RPL_WHOREPLY      = "352"
RPL_NAMREPLY      = "353"
RPL_ENDOFNAMES    = "366"
RPL_MOTD          = "372"
RPL_MOTDSTART     = "375"
RPL_ENDOFMOTD     = "376"
ERR_NICKNAMEINUSE = "433"

# Membership prefixes a server may put in front of a nick in RPL_NAMREPLY.
NAME_PREFIXES = "@+%&~."


class Reply(NamedTuple):
    prefix: Optional[str]
    command: str
    params: Tuple[str, ...]
    trailing: Optional[str]

    @property
    def source(self):
        """Nick part of the prefix (``nick`` in ``nick!user@host``)."""
        if self.prefix is None:
            return None
        return self.prefix.split("!", 1)[0]

    @property
    def is_numeric(self):
        return len(self.command) == 3 and self.command.isdigit()

    def param(self, index, default=None):
        if index < len(self.params):
            return self.params[index]
        return default


def parse(line):
    """Parse *line* into a :class:`Reply`, or return None if it has no command."""
    if line is None:
        return None
    line = line.rstrip("\r\n")
    if not line or line[0].isspace():
        return None

    prefix = None
    rest = line
    if rest.startswith(":"):
        prefix, _, rest = rest[1:].partition(" ")
        if not prefix:
            return None
        rest = rest.lstrip(" ")

    if not rest or rest.startswith(":"):
        return None

    head, sep, trailing = rest.partition(" :")
    words = head.split()
    if not words:
        return None
    return Reply(prefix, words[0], tuple(words[1:]), trailing if sep else None)


def names_in(text):
    """Nicks listed in an RPL_NAMREPLY body, with membership prefixes removed."""
    if not text:
        return []
    return [word.lstrip(NAME_PREFIXES) for word in text.split()]
