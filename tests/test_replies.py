from ircgrade.replies import Reply, names_in, parse


def test_parse_numeric_with_prefix():
    msg = parse(":irc.example 366 gnychis #linux :End of /NAMES list\r\n")
    assert msg == Reply("irc.example", "366", ("gnychis", "#linux"), "End of /NAMES list")
    assert msg.is_numeric
    assert msg.source == "irc.example"


def test_parse_without_prefix():
    msg = parse("NICKNAMEINUSE")
    assert msg.prefix is None
    assert msg.command == "NICKNAMEINUSE"
    assert msg.params == ()
    assert msg.trailing is None
    assert msg.source is None


def test_parse_empty_trailing_is_kept():
    msg = parse(":gnychis2!gnychis2@host QUIT :")
    assert msg.command == "QUIT"
    assert msg.trailing == ""
    assert msg.source == "gnychis2"


def test_parse_tolerates_runs_of_spaces():
    msg = parse(":srv   353  gnychis   =  #linux  :  gnychis  ")
    assert msg.command == "353"
    assert msg.params == ("gnychis", "=", "#linux")
    assert names_in(msg.trailing) == ["gnychis"]


def test_trailing_keeps_inner_colons():
    msg = parse(":a PRIVMSG b :time: 12:00")
    assert msg.trailing == "time: 12:00"


def test_parse_is_anchored_at_line_start():
    assert parse(" :srv 375 gnychis :- srv Message of the day - ") is None
    assert parse("") is None
    assert parse(None) is None


def test_parse_requires_a_command():
    assert parse(":prefix-only") is None
    assert parse(":srv :just text") is None
    assert parse(": 375 nick") is None


def test_param_default():
    msg = parse(":LIST 322 gnychis #linux 1")
    assert msg.param(2) == "1"
    assert msg.param(3) is None
    assert msg.param(3, "x") == "x"


def test_names_strip_membership_prefixes():
    assert names_in("@op +voice plain") == ["op", "voice", "plain"]
    assert names_in(None) == []
