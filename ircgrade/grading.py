"""
The grading run: a fixed, ordered list of scored scenarios.

Later scenarios depend on what earlier ones set up on the server (the
JOIN test leaves gnychis in #linux, the PART test expects gnychis2 to
be there, ...).  Connections live on the session and stay open from
one scenario to the next; close_all() is the only teardown.

Points:
  NICK, USER, Registration, JOIN, WHO, LIST, PRIVMSG, ECHO ON JOIN,
  MULTI-TARGET PRIVMSG, PART echo to other clients, Clients Disconnect,
  Nick name duplicate detect                         1 each
  PART echo to self                                  0
  Multiple clients in a channel                      2
  Channel Switching                                  2
  -----------------------------------------------------
  Total                                             16
"""

from functools import partial

from . import checks
from .connection import DRAIN_TIMEOUT, Connection
from .orchestrator import Scenario, note

NICK          = "gnychis"
CHANNEL       = "#linux"
OTHER_CHANNEL = "#networks"

USERINFO      = "please give me :The MOTD"
USERINFO2     = "please give me :The MOTD2"
USERNAME      = "please"
REALNAME      = "The MOTD"

MSG           = "clown hat curly hair smiley face"
MULTI_MSG     = "awesome blossom with extra awesome"
MSG2          = "clown hat curly hair smiley face 2"

# irc3 .. irc8 all sit in #linux for the multi-client scenarios.
MEMBERS = [(f"irc{i}", f"{NICK}{i}") for i in range(3, 9)]


class GradingSession:
    """Owns every client connection used by the grading scenarios."""

    def __init__(self, host, port, timeout=DRAIN_TIMEOUT, newline="\n", trace=False):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.newline = newline
        self.trace = trace
        self.clients = {}

    # -----------------------------------------------------------------------
    # Connection management
    # -----------------------------------------------------------------------

    def open(self, key, nick=""):
        conn = Connection(self.host, self.port, nick=nick,
                          newline=self.newline, trace=self.trace)
        self.clients[key] = conn
        conn.connect()
        return conn

    def register(self, key, nick):
        """Connect and register *nick*, discarding the MOTD."""
        conn = self.open(key)
        conn.send_nick(nick)
        conn.send_user(USERINFO2)
        conn.ignore_reply(self.timeout)
        return conn

    def close_all(self):
        """Best-effort disconnect of every client; errors are only reported."""
        for key, conn in self.clients.items():
            try:
                conn.disconnect()
            except OSError as exc:
                print(f"error closing {key}: {exc}")

    # -----------------------------------------------------------------------
    # Drain + check helpers
    # -----------------------------------------------------------------------

    def _verify(self, verdict):
        for text in verdict.notes:
            note(text)
        return bool(verdict)

    # Setup steps print what they saw but never score.
    _observe = _verify

    def drain(self, key):
        return self.clients[key].drain(self.timeout)

    def expect_silence(self, key):
        print(f"<-- Testing for silence ({self.timeout:g} seconds)...")
        return self._verify(checks.silence(self.drain(key)))

    def expect_delivery(self, key, sender, target, text):
        return self._verify(checks.message_delivery(self.drain(key), sender, target, text))

    def observe_join(self, key, who, channel):
        self._observe(checks.echo_join(self.drain(key), who, channel))

    def observe_departure(self, key, who):
        self._observe(checks.departure_notice(self.drain(key), who))

    def switch_channel(self, key, channel):
        conn = self.clients[key]
        conn.send_join(channel)
        conn.ignore_reply(self.timeout)
        conn.ignore_reply(self.timeout)

    # -----------------------------------------------------------------------
    # Scenarios
    # -----------------------------------------------------------------------

    def nick(self):
        # No reply is defined for a lone NICK.
        self.open("irc").send_nick(NICK)
        return self.expect_silence("irc")

    def user(self):
        # A lone USER is silent too; reconnect so NICK+USER do not register.
        print("Disconnecting and reconnecting to IRC server")
        irc = self.clients["irc"]
        irc.disconnect()
        irc.connect()
        irc.send_user(USERINFO)
        return self.expect_silence("irc")

    def registration(self):
        self.clients["irc"].send_nick(NICK)
        print("<-- Listening for MOTD...")
        return self._verify(checks.registration_reply(self.drain("irc"), NICK))

    def join(self):
        self.clients["irc"].send_join(CHANNEL)
        return self._verify(checks.join_reply(self.drain("irc"), NICK, CHANNEL))

    def who(self):
        self.clients["irc"].send_who(CHANNEL)
        lines = self.drain("irc")
        return self._verify(checks.who_reply(lines, NICK, CHANNEL, USERNAME, REALNAME))

    def list_channels(self):
        self.clients["irc"].send_list()
        return self._verify(checks.list_reply(self.drain("irc"), NICK, CHANNEL, users=1))

    def privmsg(self):
        irc2 = self.open("irc2")
        irc2.send_nick(f"{NICK}2")
        irc2.send_user(USERINFO2)
        irc2.send_privmsg(NICK, MSG)
        return self.expect_delivery("irc", f"{NICK}2", NICK, MSG)

    def echo_on_join(self):
        self.switch_channel("irc2", CHANNEL)
        lines = self.drain("irc")
        return self._verify(checks.echo_join(lines, f"{NICK}2", CHANNEL))

    def multi_target_privmsg(self):
        self.clients["irc2"].send_privmsg(f"{NICK},{CHANNEL}", MULTI_MSG)
        verdict = checks.dual_message_delivery(
            self.drain("irc"), f"{NICK}2", NICK, CHANNEL, MULTI_MSG)
        self.clients["irc2"].ignore_reply(self.timeout)
        return self._verify(verdict)

    def part_echo_to_self(self):
        self.clients["irc2"].send_part(CHANNEL)
        return self._verify(checks.departure_notice(self.drain("irc2"), f"{NICK}2"))

    def part_echo_to_others(self):
        return self._verify(checks.departure_notice(self.drain("irc"), f"{NICK}2"))

    def clients_disconnect(self):
        # gnychis3 joins and then drops without PART; gnychis sees the join
        # first and the departure after it.
        irc2 = self.clients["irc2"]
        irc2.disconnect()
        irc2.connect()
        irc2.send_nick(f"{NICK}3")
        irc2.send_user(USERINFO2)
        self.switch_channel("irc2", CHANNEL)
        irc2.disconnect()
        lines = self.drain("irc")
        return self._verify(checks.echo_join(lines, f"{NICK}3", CHANNEL))

    def duplicate_nick(self):
        irc2 = self.clients["irc2"]
        irc2.connect()
        irc2.send(f"NICK {NICK}")
        return self._verify(checks.duplicate_identity(self.drain("irc2")))

    def multiple_clients(self):
        for key, nick in MEMBERS:
            self.register(key, nick)

        joined = []
        for key, nick in MEMBERS:
            self.clients[key].send_join(CHANNEL)
            self._observe(checks.join_reply(self.drain(key), nick, CHANNEL))
            for other in joined:
                self.observe_join(other, nick, CHANNEL)
            joined.append(key)

        self.clients["irc3"].send_privmsg(CHANNEL, MSG)
        return self.expect_delivery("irc3", f"{NICK}3", CHANNEL, MSG)

    def channel_switching(self):
        # 3, 5 and 7 move to #networks one at a time; everyone still in
        # #linux sees each of them leave and #networks sees them arrive.
        movers = ["irc3", "irc5", "irc7"]
        moved = []
        for key, nick in MEMBERS:
            if key not in movers:
                continue
            self.switch_channel(key, OTHER_CHANNEL)
            for other, _ in MEMBERS:
                if other == key:
                    continue
                if other in moved:
                    self.observe_join(other, nick, OTHER_CHANNEL)
                else:
                    self.observe_departure(other, nick)
            moved.append(key)

        self.clients["irc3"].send_privmsg(CHANNEL, MSG)
        return self.expect_silence("irc3")

    def channel_switching_networks(self):
        self.clients["irc3"].send_privmsg(OTHER_CHANNEL, MSG2)
        return self.expect_delivery("irc3", f"{NICK}3", OTHER_CHANNEL, MSG2)

    def scenarios(self):
        """The grading run, in the order it must execute."""
        sender = f"{NICK}3"
        deliver_linux = partial(self.expect_delivery, sender=sender, target=CHANNEL, text=MSG)
        deliver_networks = partial(self.expect_delivery, sender=sender,
                                   target=OTHER_CHANNEL, text=MSG2)

        multi = "Multiple clients in a channel"
        switching = "Channel Switching"
        return [
            Scenario("NICK", self.nick),
            Scenario("USER", self.user,
                     failed_exp="should not return a response on its own"),
            Scenario("Registration", self.registration),
            Scenario("JOIN", self.join),
            Scenario("WHO", self.who),
            Scenario("LIST", self.list_channels),
            Scenario("PRIVMSG", self.privmsg),
            Scenario("ECHO ON JOIN", self.echo_on_join),
            Scenario("MULTI-TARGET PRIVMSG", self.multi_target_privmsg),
            Scenario("PART echo to self", self.part_echo_to_self, points=0),
            Scenario("PART echo to other clients", self.part_echo_to_others, banner=False),
            Scenario("Clients Disconnect", self.clients_disconnect),
            Scenario("Nick name duplicate detect", self.duplicate_nick),

            Scenario(multi, self.multiple_clients, points=0),
            Scenario(multi, partial(deliver_linux, "irc4"), points=0, banner=False),
            Scenario(multi, partial(deliver_linux, "irc5"), points=0, banner=False),
            Scenario(multi, partial(deliver_linux, "irc6"), points=0, banner=False),
            Scenario(multi, partial(deliver_linux, "irc7"), points=0, banner=False),
            Scenario(multi, partial(deliver_linux, "irc8"), points=2, banner=False),

            Scenario(switching, self.channel_switching, points=0),
            Scenario(switching, partial(deliver_linux, "irc4"), points=0, banner=False),
            Scenario(switching, partial(self.expect_silence, "irc5"), points=0, banner=False),
            Scenario(switching, partial(deliver_linux, "irc6"), points=0, banner=False),
            Scenario(switching, partial(self.expect_silence, "irc7"), points=0, banner=False),
            Scenario(switching, partial(deliver_linux, "irc8"), banner=False),

            Scenario(switching, self.channel_switching_networks, points=0, banner=False),
            Scenario(switching, partial(self.expect_silence, "irc4"), points=0, banner=False),
            Scenario(switching, partial(deliver_networks, "irc5"), points=0, banner=False),
            Scenario(switching, partial(self.expect_silence, "irc6"), points=0, banner=False),
            Scenario(switching, partial(deliver_networks, "irc7"), points=0, banner=False),
            Scenario(switching, partial(self.expect_silence, "irc8"), banner=False),
        ]
