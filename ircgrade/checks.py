"""
Protocol-shape checks applied to the lines drained after one command.

Every check is a plain function of the drained lines plus the values the
reply should carry (nick, channel, text).  None of them raise on a
mismatch: they return a Verdict whose notes say which reply was right or
wrong, quoting the offending line.
"""

from . import replies
from .replies import parse


class Verdict:
    """Outcome of one check: pass/fail plus the diagnostic notes."""

    def __init__(self, notes=None):
        self.ok = True
        self.notes = list(notes or [])

    def __bool__(self):
        return self.ok

    def __repr__(self):
        return f"<Verdict {'ok' if self.ok else 'failed'} {self.notes!r}>"

    def expect(self, cond, label, line=None):
        """Record one step.  The offending *line* is quoted on failure."""
        if cond:
            self.notes.append(f"{label} correct")
        else:
            self.ok = False
            if line is None:
                self.notes.append(f"{label} incorrect")
            else:
                self.notes.append(f"{label} incorrect: {line!r}")
        return bool(cond)

    def fail(self, note):
        self.ok = False
        self.notes.append(note)
        return self


def _line(lines, index):
    if -len(lines) <= index < len(lines):
        return lines[index]
    return None


def _numeric(line, code, nick):
    """Parsed *line* if it is numeric *code* addressed to *nick*, else None."""
    msg = parse(line)
    if msg is None or msg.prefix is None or msg.command != code:
        return None
    if msg.param(0) != nick:
        return None
    return msg


def _trailing_words(msg):
    return (msg.trailing or "").split()


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------

def silence(lines):
    """No reply at all (e.g. NICK or USER on their own)."""
    v = Verdict()
    if lines:
        v.fail(f"expected no reply, got {len(lines)} line(s): {lines[0]!r}")
    else:
        v.notes.append("no reply, as expected")
    return v


def registration_reply(lines, nick):
    """RPL_MOTDSTART, any number of RPL_MOTD, then RPL_ENDOFMOTD."""
    v = Verdict()
    if not lines:
        return v.fail("no MOTD received")

    first = lines[0]
    msg = _numeric(first, replies.RPL_MOTDSTART, nick)
    words = _trailing_words(msg) if msg else []
    ok = (msg is not None and words[:1] == ["-"]
          and words[2:7] == ["Message", "of", "the", "day", "-"])
    if not v.expect(ok, "RPL_MOTDSTART 375", first):
        return v

    for line in lines[1:-1]:
        msg = _numeric(line, replies.RPL_MOTD, nick)
        ok = msg is not None and _trailing_words(msg)[:1] == ["-"]
        if not v.expect(ok, "RPL_MOTD 372", line):
            return v

    last = lines[-1]
    msg = _numeric(last, replies.RPL_ENDOFMOTD, nick) if len(lines) > 1 else None
    ok = msg is not None and (msg.trailing or "").startswith("End of /MOTD command")
    v.expect(ok, "RPL_ENDOFMOTD 376", last)
    return v


def _is_join(line, who, channel):
    msg = parse(line)
    if msg is None or msg.command != "JOIN" or msg.prefix is None:
        return False
    if msg.source != who:
        return False
    target = msg.param(0, msg.trailing)
    return target == channel


def join_reply(lines, nick, channel):
    """JOIN echo, RPL_NAMREPLY listing *nick*, RPL_ENDOFNAMES; nothing else."""
    v = Verdict()
    first = _line(lines, 0)
    if not v.expect(_is_join(first, nick, channel), "JOIN echo", first):
        return v

    second = _line(lines, 1)
    msg = _numeric(second, replies.RPL_NAMREPLY, nick)
    ok = (msg is not None and msg.params[1:3] == ("=", channel)
          and nick in replies.names_in(msg.trailing))
    if not v.expect(ok, "RPL_NAMREPLY 353", second):
        return v

    third = _line(lines, 2)
    msg = _numeric(third, replies.RPL_ENDOFNAMES, nick)
    ok = (msg is not None and msg.param(1) == channel
          and (msg.trailing or "").startswith("End of /NAMES list"))
    if not v.expect(ok, "RPL_ENDOFNAMES 366", third):
        return v

    if len(lines) != 3:
        v.fail(f"expected 3 lines after JOIN, got {len(lines)}: {lines[3:]!r}")
    return v


def who_reply(lines, nick, channel, username, realname):
    """RPL_WHOREPLY for *nick* in *channel*, then RPL_ENDOFWHO."""
    v = Verdict()
    first = _line(lines, 0)
    msg = _numeric(first, replies.RPL_WHOREPLY, nick)
    ok = False
    if msg is not None and len(msg.params) >= 7:
        hops, _, real = (msg.trailing or "").partition(" ")
        ok = (msg.param(1) == channel and msg.param(2) == username
              and msg.param(5) == nick and msg.param(6) == "H"
              and hops == "0" and real.lstrip().startswith(realname))
    if not v.expect(ok, "RPL_WHOREPLY 352", first):
        return v

    second = _line(lines, 1)
    msg = _numeric(second, replies.RPL_ENDOFWHO, nick)
    ok = (msg is not None and msg.param(1) == channel
          and (msg.trailing or "").startswith("End of /WHO list"))
    v.expect(ok, "RPL_ENDOFWHO 315", second)
    return v


def list_reply(lines, nick, channel, users=1):
    """RPL_LISTSTART, RPL_LIST for *channel* with *users* members, RPL_LISTEND."""
    v = Verdict()
    first = _line(lines, 0)
    msg = _numeric(first, replies.RPL_LISTSTART, nick)
    ok = (msg is not None and msg.param(1) == "Channel"
          and (msg.trailing or "").startswith("Users"))
    if not v.expect(ok, "RPL_LISTSTART 321", first):
        return v

    second = _line(lines, 1)
    msg = _numeric(second, replies.RPL_LIST, nick)
    ok = False
    if msg is not None and msg.param(1) == channel:
        count = msg.param(2)
        if count is None:
            count = (_trailing_words(msg) or [None])[0]
        ok = count == str(users)
    if not v.expect(ok, "RPL_LIST 322", second):
        return v

    third = _line(lines, 2)
    msg = _numeric(third, replies.RPL_LISTEND, nick)
    ok = msg is not None and (msg.trailing or "").startswith("End of /LIST")
    v.expect(ok, "RPL_LISTEND 323", third)
    return v


def is_delivery(line, sender, target, text):
    """True if *line* is ``:sender PRIVMSG target :text``."""
    msg = parse(line)
    if msg is None or msg.command != "PRIVMSG":
        return False
    return (msg.source == sender and msg.params == (target,)
            and msg.trailing is not None and msg.trailing.rstrip() == text)


def message_delivery(lines, sender, target, text):
    """Exactly one line, delivering *text* from *sender* to *target*."""
    v = Verdict()
    first = _line(lines, 0)
    label = f"PRIVMSG from {sender} to {target}"
    if not v.expect(is_delivery(first, sender, target, text), label, first):
        return v
    if len(lines) != 1:
        v.fail(f"expected 1 line, got {len(lines)}: {lines[1:]!r}")
    return v


def dual_message_delivery(lines, sender, target1, target2, text):
    """Exactly two deliveries of *text*, one per target, in either order."""
    v = Verdict()
    label = f"PRIVMSG to {target1} and {target2}"
    if len(lines) != 2:
        return v.fail(f"{label} incorrect: expected 2 lines, got {lines!r}")

    a, b = lines
    ok = ((is_delivery(a, sender, target1, text) and is_delivery(b, sender, target2, text))
          or (is_delivery(b, sender, target1, text) and is_delivery(a, sender, target2, text)))
    v.expect(ok, label, None if ok else lines)
    return v


def echo_join(lines, who, channel):
    """The first line announces that *who* joined *channel*."""
    v = Verdict()
    first = _line(lines, 0)
    v.expect(_is_join(first, who, channel), f"JOIN of {who} to {channel} echoed", first)
    return v


def departure_notice(lines, who):
    """The first line is ``:who!user@host QUIT :...`` (PART or disconnect)."""
    v = Verdict()
    first = _line(lines, 0)
    msg = parse(first)
    ok = False
    if msg is not None and msg.command == "QUIT" and msg.prefix and msg.trailing is not None:
        nick, _, userhost = msg.prefix.partition("!")
        user, _, host = userhost.partition("@")
        ok = nick == who and bool(user) and bool(host)
    v.expect(ok, f"QUIT of {who}", first)
    return v


def duplicate_identity(lines):
    """The server refused a nick that another client already holds."""
    v = Verdict()
    first = _line(lines, 0)
    msg = parse(first)
    ok = msg is not None and msg.command in ("NICKNAMEINUSE", replies.ERR_NICKNAMEINUSE)
    if ok:
        v.notes.append("Nick name in use detected")
    else:
        v.fail(f"Nick name in use not detected: {first!r}")
    return v
